"""seqchain: sequential async workflows with per-step recovery.

Public API:
    - ChainBuilder: queue steps with next()/foreach(), guard them with catch(),
      run them with end()
    - Finalized: returned by end(); await guarantee() for the final value
    - USE_DEFAULT: ask guarantee() to use the builder's default fallback
    - ChainConfig / resolve_config / RecoveryMode: configuration
"""

from __future__ import annotations

import logging

from seqchain.builder import ChainBuilder
from seqchain.config import ChainConfig, RecoveryMode, resolve_config
from seqchain.errors import (
    ChainConstructionError,
    ConfigurationError,
    MissingFallbackError,
    SeqChainError,
)
from seqchain.finalized import USE_DEFAULT, Finalized
from seqchain.outcome import Failure, Outcome, Success
from seqchain.telemetry import SimpleReporter, TelemetryReporter

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("seqchain")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("seqchain").addHandler(logging.NullHandler())

__all__ = [
    "USE_DEFAULT",
    "ChainBuilder",
    "ChainConfig",
    "ChainConstructionError",
    "ConfigurationError",
    "Failure",
    "Finalized",
    "MissingFallbackError",
    "Outcome",
    "RecoveryMode",
    "SeqChainError",
    "SimpleReporter",
    "Success",
    "TelemetryReporter",
    "resolve_config",
]
