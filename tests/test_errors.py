from __future__ import annotations

import pytest

from seqchain.errors import (
    ChainConstructionError,
    ConfigurationError,
    MissingFallbackError,
    SeqChainError,
)

pytestmark = pytest.mark.unit


def test_message_without_hint() -> None:
    err = SeqChainError("fail")

    assert str(err) == "fail"
    assert err.hint is None


def test_hint_is_appended_to_message() -> None:
    err = ConfigurationError("bad value", hint="Use 'step'")

    assert str(err) == "bad value. Use 'step'"
    assert err.args == ("bad value",)
    assert err.hint == "Use 'step'"


def test_subclass_hierarchy() -> None:
    """Library errors are catchable as SeqChainError; the missing fallback is a config error."""
    missing = MissingFallbackError("no default")
    construction = ChainConstructionError("no step")

    assert isinstance(missing, ConfigurationError)
    assert isinstance(missing, SeqChainError)
    assert isinstance(construction, SeqChainError)
    assert not isinstance(construction, ConfigurationError)
