"""The chain builder and its sequential execution engine.

Steps are queued with ``next`` / ``foreach``, optionally guarded with
``catch``, and executed strictly in append order once ``end`` is called.
Each step receives the previous step's result; every result is collected
positionally and handed to the aggregate callable.

Error recovery is local: only the handler attached to the step that failed
applies. With the default ``RecoveryMode.AGGREGATE`` the handler's return
value is passed to ``aggregate`` in place of the whole result sequence, so
handlers must return what ``aggregate`` expects. ``RecoveryMode.STEP``
instead substitutes the handler's value for the failing step's result and
carries on with the chain.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from seqchain.config import RecoveryMode, resolve_config
from seqchain.errors import ChainConstructionError
from seqchain.finalized import Finalized
from seqchain.outcome import Failure, Success
from seqchain.steps import Step, foreach_unit, invoke, settle
from seqchain.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from seqchain.config import ChainConfig
    from seqchain.outcome import Outcome
    from seqchain.steps import ForeachItems, Handler, Unit
    from seqchain.telemetry import TelemetryReporter

log = logging.getLogger(__name__)

R = TypeVar("R")


class ChainBuilder:
    """Assembles and runs a strictly ordered sequence of async steps.

    Example:
        value = await (
            ChainBuilder()
            .next(fetch("a"))
            .next(lambda prev: fetch(prev + "b"))
            .end(lambda results: "".join(results))
            .guarantee(lambda exc: "")
        )
    """

    def __init__(
        self,
        default_fallback: Handler | None = None,
        *,
        config: ChainConfig | None = None,
        reporters: Iterable[TelemetryReporter] = (),
    ) -> None:
        """Initialize an empty chain.

        Args:
            default_fallback: Handler used by ``Finalized.guarantee(USE_DEFAULT)``.
            config: Chain configuration; resolved from the environment if omitted.
            reporters: Telemetry reporters, used when telemetry is enabled.
        """
        if default_fallback is not None and not callable(default_fallback):
            raise TypeError(
                f"default_fallback must be callable, got {type(default_fallback).__name__}"
            )
        self._default_fallback = default_fallback
        self.config = config if config is not None else resolve_config()
        self._reporters = tuple(reporters)
        self._steps: list[Step] = []
        self._ended = False

    # --- Construction ---

    def next(self, unit: Unit) -> ChainBuilder:
        """Append a step.

        Args:
            unit: An awaitable to await as-is, or a callable taking the previous
                step's result and returning an awaitable (or a plain value).

        Returns:
            self (for method chaining)
        """
        self._ensure_open("next")
        self._steps.append(Step(unit))
        return self

    def catch(self, handler: Handler) -> ChainBuilder:
        """Attach an error handler to the most recently appended step.

        A later ``catch`` on the same step replaces the earlier handler.
        """
        self._ensure_open("catch")
        if not self._steps:
            raise ChainConstructionError(
                "catch() called before any step was added",
                hint="Call next() or foreach() first; a handler guards the step before it",
            )
        self._steps[-1] = self._steps[-1].with_handler(handler)
        return self

    def foreach(self, items: ForeachItems, task: Callable[..., Any]) -> ChainBuilder:
        """Append a step that runs ``task(item, previous)`` for each item in turn.

        ``items`` is an iterable, or a callable of the previous result that
        returns one. The step's result is the list of task results in item
        order. A failing item fails the whole step.
        """
        self._ensure_open("foreach")
        return self.next(foreach_unit(items, task))

    def end(self, aggregate: Callable[..., Any]) -> Finalized[R]:
        """Close the chain and start running it.

        Args:
            aggregate: Called with the tuple of step results (sync or async).

        Returns:
            A ``Finalized`` handle; await ``guarantee`` on it for the value.
        """
        self._ensure_open("end")
        if not callable(aggregate):
            raise TypeError(f"aggregate must be callable, got {type(aggregate).__name__}")
        self._ended = True
        steps = tuple(self._steps)
        return Finalized(
            lambda: self._execute(steps, aggregate),
            self._default_fallback,
        )

    def _ensure_open(self, operation: str) -> None:
        if self._ended:
            raise ChainConstructionError(
                f"{operation}() called after end()",
                hint="Create a new ChainBuilder for each chain",
            )

    # --- Execution ---

    async def _execute(
        self, steps: tuple[Step, ...], aggregate: Callable[..., Any]
    ) -> Outcome[Any, Exception]:
        ctx = TelemetryContext(*self._reporters, enabled=self.config.telemetry_enabled)
        log.debug("Running chain of %d step(s)", len(steps))

        with ctx("chain.run", steps=len(steps)):
            results: list[Any] = []
            previous: Any = None

            for index, step in enumerate(steps):
                error: BaseException | None = None
                try:
                    with ctx("chain.step", index=index, label=step.label):
                        previous = await step.run(previous)
                except asyncio.CancelledError as cancelled:
                    # A cancelled unit is a step failure; cancelling the run itself is not
                    if _run_is_cancelling():
                        raise
                    error = cancelled
                except Exception as exc:
                    error = exc

                if error is not None:
                    log.debug(
                        "Step %d (%s) failed: %r",
                        index,
                        step.label,
                        error,
                        exc_info=error,
                    )
                    handler = step.error_handler
                    if handler is None:
                        self._discard(steps[index + 1 :])
                        ctx.count("chain.failed", index=index)
                        return Failure(error)

                    ctx.count("chain.recovered", index=index, mode=self.config.recovery)
                    try:
                        recovered = await settle(invoke(handler, error))
                    except Exception as handler_error:
                        self._discard(steps[index + 1 :])
                        log.debug("Error handler for step %d raised", index, exc_info=True)
                        return Failure(handler_error)

                    if self.config.recovery is RecoveryMode.STEP:
                        previous = recovered
                    else:
                        self._discard(steps[index + 1 :])
                        return await self._aggregate(aggregate, recovered)
                results.append(previous)

            outcome = await self._aggregate(aggregate, tuple(results))
        log.debug("Chain finished: %s", type(outcome).__name__)
        return outcome

    async def _aggregate(
        self, aggregate: Callable[..., Any], results: Any
    ) -> Outcome[Any, Exception]:
        try:
            return Success(await settle(aggregate(results)))
        except Exception as e:
            log.debug("Aggregate raised", exc_info=True)
            return Failure(e)

    @staticmethod
    def _discard(skipped: tuple[Step, ...]) -> None:
        for step in skipped:
            step.discard()

    # --- Introspection ---

    @property
    def step_names(self) -> tuple[str, ...]:
        """Return the queued steps' labels in execution order."""
        return tuple(step.label for step in self._steps)

    @property
    def ended(self) -> bool:
        """True once ``end`` has been called; the builder then rejects changes."""
        return self._ended

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return (
            f"ChainBuilder(steps={len(self._steps)}, "
            f"recovery={self.config.recovery.value}, ended={self._ended})"
        )


def _run_is_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0

