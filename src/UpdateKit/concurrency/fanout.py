# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.concurrency.fanout",
#   "purpose": "Settle-all fan-out over independent fallible operations",
#   "sections": [
#     {"id": "outcome", "name": "Outcome", "anchor": "class-outcome", "kind": "class"},
#     {"id": "fanoutresult", "name": "FanOutResult", "anchor": "class-fanoutresult", "kind": "class"},
#     {"id": "fan-out", "name": "fan_out", "anchor": "function-fan-out", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Settle-all fan-out over independent fallible operations.

:func:`fan_out` submits every operation before looking at any result and then
waits for the whole set to finish, successful or not.  The caller inspects the
returned :class:`FanOutResult` and decides on partial success; the common
policy "fail only if everything failed" is available as
:meth:`FanOutResult.raise_if_all_failed`.
"""

from __future__ import annotations

import logging
from concurrent import futures
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .executors import create_executor

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Settled result of one operation; exactly one of ``value``/``error`` is meaningful."""

    index: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class FanOutResult(Generic[T]):
    """Outcomes of a fan-out, ordered like the submitted operations."""

    outcomes: Tuple[Outcome[T], ...]

    @property
    def succeeded(self) -> List[Outcome[T]]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[Outcome[T]]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def errors(self) -> List[BaseException]:
        return [outcome.error for outcome in self.outcomes if outcome.error is not None]

    @property
    def all_failed(self) -> bool:
        """``True`` when at least one operation ran and none of them succeeded."""
        return bool(self.outcomes) and all(not outcome.ok for outcome in self.outcomes)

    def raise_if_all_failed(self, operation: str) -> None:
        """Raise :class:`AggregateResolverError` when every operation failed.

        An empty fan-out never raises.
        """
        if not self.all_failed:
            return
        # Local import keeps the concurrency package free of import cycles.
        from UpdateKit.PackageResolvers.errors import AggregateResolverError

        raise AggregateResolverError(operation, self.errors)

    def __len__(self) -> int:
        return len(self.outcomes)


def _run_inline(operations: Sequence[Callable[[], T]]) -> List[Outcome[T]]:
    outcomes: List[Outcome[T]] = []
    for index, operation in enumerate(operations):
        try:
            outcomes.append(Outcome(index=index, value=operation()))
        except Exception as exc:
            outcomes.append(Outcome(index=index, error=exc))
    return outcomes


def fan_out(
    operations: Sequence[Callable[[], T]],
    *,
    max_workers: Optional[int] = None,
    thread_name_prefix: str = "updatekit-fanout",
) -> FanOutResult[T]:
    """Run ``operations`` concurrently and wait until every one has settled.

    Args:
        operations: Zero-argument callables. ``Exception`` subclasses they raise
            are captured; anything else (``KeyboardInterrupt``, ``SystemExit``)
            propagates to the caller on both the inline and threaded paths.
        max_workers: Upper bound on worker threads; defaults to one thread per
            operation.
        thread_name_prefix: Prefix applied to worker thread names.

    Returns:
        :class:`FanOutResult` with one :class:`Outcome` per operation in input
        order, independent of completion order.
    """
    if not operations:
        return FanOutResult(outcomes=())

    workers = min(max_workers or len(operations), len(operations))
    executor, needs_shutdown = create_executor(
        "io", workers, thread_name_prefix=thread_name_prefix
    )
    if executor is None:
        return FanOutResult(outcomes=tuple(_run_inline(operations)))

    try:
        submitted = [executor.submit(operation) for operation in operations]
        futures.wait(submitted, return_when=futures.ALL_COMPLETED)
    finally:
        if needs_shutdown:
            executor.shutdown(wait=True)

    outcomes: List[Outcome[T]] = []
    for index, future in enumerate(submitted):
        error = future.exception()
        if error is not None and not isinstance(error, Exception):
            raise error
        if error is not None:
            LOGGER.debug("fan-out operation %d failed: %s", index, error)
            outcomes.append(Outcome(index=index, error=error))
        else:
            outcomes.append(Outcome(index=index, value=future.result()))
    return FanOutResult(outcomes=tuple(outcomes))


__all__ = ["Outcome", "FanOutResult", "fan_out"]
