"""Small async helpers shared by the chain tests."""

from __future__ import annotations

import asyncio
from typing import Any


async def resolved(value: Any) -> Any:
    """Return ``value`` after yielding to the event loop once."""
    await asyncio.sleep(0)
    return value


async def rejected(error: Exception) -> Any:
    """Raise ``error`` after yielding to the event loop once."""
    await asyncio.sleep(0)
    raise error


class Boom(Exception):
    """A step failure raised by test units."""
