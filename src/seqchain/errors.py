"""Exception hierarchy for seqchain."""

from __future__ import annotations


class SeqChainError(Exception):
    """Base exception for all seqchain errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message followed by the hint, when one is set."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(SeqChainError):
    """Configuration validation or resolution failed."""


class MissingFallbackError(ConfigurationError):
    """``guarantee(USE_DEFAULT)`` was used without a registered default fallback.

    Signals a setup mistake. It never wraps the chain failure that triggered
    the fallback lookup.
    """


class ChainConstructionError(SeqChainError):
    """A chain was assembled in an invalid order.

    Raised by ``catch`` before any step exists, and by any construction call
    made after ``end``.
    """
