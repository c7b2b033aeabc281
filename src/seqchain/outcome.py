"""Outcome primitives for chain execution.

A chain run never lets a step exception escape; it settles into exactly one
``Success`` or ``Failure`` so that ``Finalized`` can resolve it later.
"""

from __future__ import annotations

import dataclasses
import typing

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success(typing.Generic[TSuccess]):
    """A chain that completed, directly or through a step's error handler."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure(typing.Generic[TFailure]):
    """A chain that failed without recovery, containing the error."""

    error: TFailure


Outcome = Success[TSuccess] | Failure[TFailure]
