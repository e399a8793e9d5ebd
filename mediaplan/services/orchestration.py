"""
Recompute coordination for interactive plan editing.

Channel forms recompute billing bursts, monthly investment and grouped rows
on every edit. RecomputeCoordinator sits between the form and a pure engine
function and owns the two policies that keep this cheap:

- Debounce: submissions arriving within debounce_ms of the last run are
  held as pending instead of recomputed; flush() or a later submission
  runs them.
- Value equality: identical inputs skip the engine, and listeners are only
  notified when the result actually changed.

Usage:
    coordinator = RecomputeCoordinator(
        lambda items: build_billing_bursts(items, fee, "television"),
        debounce_ms=settings.recompute_debounce_ms,
    )
    coordinator.add_listener(push_to_client)
    result, changed = coordinator.submit(line_items)
"""

import copy
import logging
import time
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

I = TypeVar("I")
R = TypeVar("R")

_UNSET = object()


class RecomputeCoordinator(Generic[I, R]):
    """Debounced, change-detecting wrapper around a pure engine function."""

    def __init__(
        self,
        engine: Callable[[I], R],
        debounce_ms: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._debounce_seconds = max(debounce_ms, 0) / 1000.0
        self._clock = clock
        self._listeners: List[Callable[[R], None]] = []
        self._last_inputs: Any = _UNSET
        self._pending: Any = _UNSET
        self._last_run: Optional[float] = None
        self._result: Optional[R] = None

    @property
    def result(self) -> Optional[R]:
        return self._result

    @property
    def has_pending(self) -> bool:
        return self._pending is not _UNSET

    def add_listener(self, listener: Callable[[R], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[R], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def submit(self, inputs: I, force: bool = False) -> Tuple[Optional[R], bool]:
        """
        Offer new inputs.

        Returns:
            (result, changed): the current result and whether this call
            produced a different one. A debounced call returns the previous
            result with changed=False and keeps the inputs pending.
        """
        now = self._clock()
        if (
            not force
            and self._last_run is not None
            and now - self._last_run < self._debounce_seconds
        ):
            self._pending = inputs
            return self._result, False

        return self._run(inputs, now, force)

    def flush(self) -> Tuple[Optional[R], bool]:
        """Run pending inputs now, ignoring the debounce window."""
        if self._pending is _UNSET:
            return self._result, False
        return self._run(self._pending, self._clock(), force=False)

    def _run(self, inputs: I, now: float, force: bool) -> Tuple[Optional[R], bool]:
        self._pending = _UNSET
        self._last_run = now

        if not force and self._last_inputs is not _UNSET and inputs == self._last_inputs:
            return self._result, False

        result = self._engine(inputs)
        # callers may edit their inputs in place after submitting
        self._last_inputs = copy.deepcopy(inputs)

        had_result = self._result is not None
        changed = not had_result or result != self._result
        self._result = result

        if changed:
            logger.debug(f"Recomputed result changed; notifying {len(self._listeners)} listeners")
            for listener in list(self._listeners):
                listener(result)

        return result, changed
