"""Step values and the helpers that run them.

A step pairs a unit of work with an optional error handler. Units are either
already-pending awaitables, which run independently of the chain, or
callables of the previous step's result.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
import dataclasses
import inspect
from typing import Any

Handler = Callable[..., Any]
Unit = Awaitable[Any] | Callable[..., Any]
ForeachItems = Iterable[Any] | Callable[..., Any]

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def positional_capacity(fn: Callable[..., Any]) -> int | None:
    """Return how many positional arguments ``fn`` accepts, or None if unbounded.

    Callables whose signature cannot be inspected are treated as unbounded.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in _POSITIONAL:
            count += 1
    return count


def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn`` with as many leading ``args`` as its signature accepts.

    Lets ``lambda: ...``, ``lambda prev: ...`` and ``lambda item, prev: ...``
    all serve as units, handlers and per-item tasks.
    """
    capacity = positional_capacity(fn)
    if capacity is None:
        return fn(*args)
    return fn(*args[:capacity])


async def settle(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def describe(obj: Any) -> str:
    """Return a short human-readable label for a unit or handler."""
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    return name if isinstance(name, str) else type(obj).__name__


@dataclasses.dataclass(frozen=True, slots=True)
class Step:
    """One unit of work in a chain plus its optional error handler."""

    unit: Unit
    error_handler: Handler | None = None
    label: str = ""

    def __post_init__(self) -> None:
        if not (inspect.isawaitable(self.unit) or callable(self.unit)):
            raise TypeError(
                "A step unit must be an awaitable or a callable of the previous "
                f"result, got {type(self.unit).__name__}"
            )
        if self.error_handler is not None and not callable(self.error_handler):
            raise TypeError(
                f"An error handler must be callable, got {type(self.error_handler).__name__}"
            )
        if not self.label:
            object.__setattr__(self, "label", describe(self.unit))

    @property
    def is_pending(self) -> bool:
        """True when the unit is an awaitable that ignores the threaded value."""
        return inspect.isawaitable(self.unit)

    def with_handler(self, handler: Handler) -> Step:
        return dataclasses.replace(self, error_handler=handler)

    async def run(self, previous: Any) -> Any:
        """Execute the unit and return its settled result."""
        if self.is_pending:
            return await self.unit  # type: ignore[misc]
        return await settle(invoke(self.unit, previous))  # type: ignore[arg-type]

    def discard(self) -> None:
        """Close a never-awaited coroutine unit so it does not warn on collection."""
        if inspect.iscoroutine(self.unit) and inspect.getcoroutinestate(
            self.unit
        ) == inspect.CORO_CREATED:
            self.unit.close()


def foreach_unit(
    items: ForeachItems, task: Callable[..., Any]
) -> Callable[[Any], Awaitable[list[Any]]]:
    """Compose a unit that runs ``task`` over ``items`` one item at a time.

    ``items`` is an iterable, or a callable of the previous result returning
    an iterable (or an awaitable of one). ``task`` is called as
    ``task(item, previous)``; results are collected in item order.
    """
    if not callable(task):
        raise TypeError(f"A foreach task must be callable, got {type(task).__name__}")
    if not callable(items) and not isinstance(items, Iterable):
        raise TypeError(
            "foreach items must be an iterable or a callable of the previous "
            f"result, got {type(items).__name__}"
        )

    async def run_each(previous: Any) -> list[Any]:
        resolved = await settle(invoke(items, previous)) if callable(items) else items
        results: list[Any] = []
        for item in resolved:
            results.append(await settle(invoke(task, item, previous)))
        return results

    run_each.__qualname__ = f"foreach({describe(task)})"
    return run_each
