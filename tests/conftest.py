"""Pytest configuration and fixtures.

Provides environment isolation, marker registration and shared test doubles.
Fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import os

import pytest

from seqchain import ChainConfig, RecoveryMode

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_seqchain_env(monkeypatch):
    """Clear SEQCHAIN_* variables so ambient configuration never leaks into tests."""
    for key in list(os.environ.keys()):
        if key.startswith("SEQCHAIN_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def aggregate_config() -> ChainConfig:
    """Configuration using the default whole-sequence recovery."""
    return ChainConfig(recovery=RecoveryMode.AGGREGATE)


@pytest.fixture
def step_config() -> ChainConfig:
    """Configuration where a handler's value replaces only its step's result."""
    return ChainConfig(recovery=RecoveryMode.STEP)


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Multi-component chain scenarios",
        "allow_dotenv: Permit python-dotenv to load .env files",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)
