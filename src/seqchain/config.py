"""Chain configuration: a frozen pydantic schema resolved from the environment.

Precedence is ``defaults < environment < overrides``. Environment variables
use the ``SEQCHAIN_`` prefix; a ``.env`` file is loaded first when present.
"""

from __future__ import annotations

from contextlib import suppress
from enum import StrEnum
import logging
import os
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from seqchain.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

ENV_PREFIX = "SEQCHAIN_"

_DOTENV_LOADED = False


class RecoveryMode(StrEnum):
    """How a step's error handler feeds back into the chain."""

    #: The handler's return value replaces the whole result sequence passed
    #: to ``aggregate``.
    AGGREGATE = "aggregate"
    #: The handler's return value becomes the failing step's result and the
    #: chain continues with the next step.
    STEP = "step"


class ChainConfig(BaseModel):
    """Immutable configuration for a chain builder."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    recovery: RecoveryMode = Field(default=RecoveryMode.AGGREGATE)
    telemetry_enabled: bool = Field(default=False)

    @field_validator("recovery", mode="before")
    @classmethod
    def normalize_recovery(cls, v: Any) -> Any:
        """Accept enum instances, values (``"step"``) or names (``"STEP"``)."""
        if v is None or isinstance(v, RecoveryMode):
            return v or RecoveryMode.AGGREGATE
        if isinstance(v, str):
            v = v.strip()
            with suppress(ValueError):
                return RecoveryMode(v.lower())
            with suppress(KeyError):
                return RecoveryMode[v.upper()]
        return v  # Let pydantic raise with a precise error message


def _try_load_dotenv() -> None:
    """Load a ``.env`` file once per process.

    Loader errors (an unreadable or malformed file) are logged and ignored so
    that resolution falls back to the process environment.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    try:
        from dotenv import load_dotenv

        load_dotenv()
    except Exception as e:
        log.debug("Skipping .env file: %s", e, exc_info=True)
    _DOTENV_LOADED = True


def load_env() -> dict[str, Any]:
    """Collect ``SEQCHAIN_*`` variables that name a ``ChainConfig`` field.

    Values stay strings; pydantic coerces them during validation.
    """
    values: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in ChainConfig.model_fields:
            values[field_name] = value
    return values


def resolve_config(overrides: Mapping[str, Any] | None = None) -> ChainConfig:
    """Resolve configuration from defaults, environment and overrides.

    Args:
        overrides: Programmatic values; these win over the environment.

    Returns:
        A frozen ``ChainConfig``.

    Raises:
        ConfigurationError: If validation fails.
    """
    _try_load_dotenv()
    merged = {**load_env(), **(overrides or {})}

    try:
        config = ChainConfig.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        msg = err.get("msg")
        if msg and msg.startswith("Value error, "):
            msg = msg[13:]
        loc = ".".join(str(part) for part in err.get("loc", ()))

        hint = None
        if loc == "recovery":
            hint = "Use one of: " + ", ".join(repr(m.value) for m in RecoveryMode)
        elif err.get("type") == "extra_forbidden":
            hint = "Known fields: " + ", ".join(ChainConfig.model_fields)

        raise ConfigurationError(
            f"Configuration validation failed for {loc or 'config'}: {msg}",
            hint=hint,
        ) from e

    log.debug("Resolved chain config: %s", config)
    return config
