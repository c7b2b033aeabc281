"""The terminal handle returned by ``ChainBuilder.end``."""

from __future__ import annotations

import asyncio
from contextlib import suppress
import logging
from typing import TYPE_CHECKING, Any, Final, Generic, Literal, TypeVar

from seqchain.errors import MissingFallbackError
from seqchain.outcome import Success
from seqchain.steps import invoke, settle

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from seqchain.outcome import Outcome
    from seqchain.steps import Handler

log = logging.getLogger(__name__)

#: Passed to ``guarantee`` to resolve failures with the builder's default fallback.
USE_DEFAULT: Final = "DEFAULT"


R = TypeVar("R")


class Finalized(Generic[R]):
    """Wraps the eventual outcome of a chain run.

    The run starts as soon as ``end`` is called when an event loop is running,
    otherwise on the first ``guarantee`` await. It runs exactly once;
    ``guarantee`` may be awaited any number of times and observes the same
    outcome each time.
    """

    __slots__ = ("_default_fallback", "_run", "_task")

    def __init__(
        self,
        run: Callable[[], Coroutine[Any, Any, Outcome[R, Exception]]],
        default_fallback: Handler | None = None,
    ) -> None:
        self._run = run
        self._default_fallback = default_fallback
        self._task: asyncio.Task[Outcome[R, Exception]] | None = None
        with suppress(RuntimeError):
            self._task = asyncio.get_running_loop().create_task(run())

    async def _outcome(self) -> Outcome[R, Exception]:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        # Cancelling a waiter must not abort the chain itself
        return await asyncio.shield(self._task)

    async def guarantee(
        self, handler: Handler | Literal["DEFAULT"] = USE_DEFAULT
    ) -> Any:
        """Resolve the chain to a value, recovering from failure.

        Args:
            handler: Called with the chain's exception when the chain failed.
                Pass ``USE_DEFAULT`` to use the default fallback registered on
                the builder instead.

        Returns:
            The chain's value on success, otherwise the fallback's result
            (awaited when the fallback is async).

        Raises:
            MissingFallbackError: ``USE_DEFAULT`` was requested for a failed
                chain whose builder has no default fallback.
            TypeError: ``handler`` is neither callable nor ``USE_DEFAULT``.
        """
        use_default = isinstance(handler, str) and handler == USE_DEFAULT
        if not use_default and not callable(handler):
            raise TypeError(
                f"guarantee() expects a callable or USE_DEFAULT, got {handler!r}"
            )

        outcome = await self._outcome()
        if isinstance(outcome, Success):
            return outcome.value

        fallback = handler
        if use_default:
            if self._default_fallback is None:
                raise MissingFallbackError(
                    "guarantee(USE_DEFAULT) was called but no default fallback is set",
                    hint="Pass default_fallback=... to ChainBuilder or give guarantee() a handler",
                )
            fallback = self._default_fallback

        log.debug("Resolving failed chain with fallback: %r", outcome.error)
        return await settle(invoke(fallback, outcome.error))  # type: ignore[arg-type]

    def __repr__(self) -> str:
        if self._task is None:
            state = "pending"
        elif not self._task.done():
            state = "running"
        elif self._task.cancelled() or self._task.exception() is not None:
            state = "aborted"
        else:
            state = type(self._task.result()).__name__.lower()
        return f"Finalized({state})"
