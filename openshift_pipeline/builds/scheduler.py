"""Dependency-aware dispatch of build definitions.

The scheduler drains a FIFO worklist of build definition entries. Each
pass visits every queued entry once: ready entries are dispatched as
concurrent tasks, the rest go back to the tail. A pass that dispatches
nothing ends the round; the scheduler then waits for every outstanding
dispatch (their results unblock dependents) and starts another round.
A pass that dispatches nothing while no dispatch is outstanding is a
stall: the remaining entries can never become ready within this session.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from openshift_pipeline.resources.cache import CacheEntry
from openshift_pipeline.types import DispatchOutcome, DispatchState

logger = logging.getLogger(__name__)

Dispatch = Callable[[CacheEntry], Awaitable[DispatchOutcome]]


@dataclass
class ScheduleResult:
    """Result of draining a set of build definitions.

    Attributes:
        identifiers: Triggered or reused build identifiers in arrival order.
        outcomes: Per-entry dispatch outcomes in arrival order.
        failed: Entries whose dispatch raised.
        stalled: Entries never dispatched because a producer they depend on
            did not resolve (dependency cycle, failed producer, ...).
        rounds: Number of drain rounds.
    """

    identifiers: list[str] = field(default_factory=list)
    outcomes: list[DispatchOutcome] = field(default_factory=list)
    failed: list[CacheEntry] = field(default_factory=list)
    stalled: list[CacheEntry] = field(default_factory=list)
    rounds: int = 0

    @property
    def ok(self) -> bool:
        """True when every entry was dispatched successfully."""
        return not self.failed and not self.stalled


def is_ready(entry: CacheEntry) -> bool:
    """Check whether every producer an entry depends on has resolved.

    A dependency whose image stream has no producer in this session is
    already satisfied.
    """
    for dependency in entry.dependencies:
        producer = dependency.build_config_entry
        if producer is None:
            continue
        if not producer.resolved:
            return False
    return True


class BuildScheduler:
    """Drains build definition entries, dispatching them once ready.

    Args:
        dispatch: Coroutine building or reusing one entry; must record its
            result on the entry before returning.
        max_concurrent: Upper bound on concurrently running dispatches.
    """

    def __init__(self, dispatch: Dispatch, max_concurrent: int = 4) -> None:
        self._dispatch = dispatch
        self.max_concurrent = max_concurrent

    async def run(self, entries: Sequence[CacheEntry]) -> ScheduleResult:
        """Dispatch every entry exactly once, in dependency order.

        Args:
            entries: Linked build definition entries.

        Returns:
            ScheduleResult; stalled entries are reported, not raised.
        """
        result = ScheduleResult()
        worklist: deque[CacheEntry] = deque(dict.fromkeys(entries))
        outstanding: set[asyncio.Task[None]] = set()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        logger.debug("Scheduling %d build definition(s)", len(worklist))
        while worklist:
            dispatched = self._drain_pass(worklist, outstanding, semaphore, result)
            if dispatched:
                continue

            if not outstanding:
                result.stalled = list(worklist)
                logger.warning(
                    "Scheduler stalled with %d undispatched build definition(s): %s",
                    len(worklist),
                    ", ".join(entry.key for entry in worklist),
                )
                break

            result.rounds += 1
            logger.debug(
                "Round %d: waiting for %d dispatch(es), %d queued",
                result.rounds,
                len(outstanding),
                len(worklist),
            )
            await asyncio.gather(*outstanding)
            outstanding.clear()

        if outstanding:
            result.rounds += 1
            await asyncio.gather(*outstanding)
        return result

    def _drain_pass(
        self,
        worklist: deque[CacheEntry],
        outstanding: set[asyncio.Task[None]],
        semaphore: asyncio.Semaphore,
        result: ScheduleResult,
    ) -> int:
        dispatched = 0
        for _ in range(len(worklist)):
            entry = worklist.popleft()
            if not is_ready(entry):
                worklist.append(entry)
                logger.debug("Delaying %s", entry.key)
                continue
            logger.debug("Queuing %s", entry.key)
            entry.state = DispatchState.DISPATCHED
            outstanding.add(asyncio.ensure_future(self._run_dispatch(entry, semaphore, result)))
            dispatched += 1
        return dispatched

    async def _run_dispatch(
        self,
        entry: CacheEntry,
        semaphore: asyncio.Semaphore,
        result: ScheduleResult,
    ) -> None:
        async with semaphore:
            try:
                outcome = await self._dispatch(entry)
            except Exception as e:
                # Dependents of a failed entry stay queued and end up stalled
                entry.state = DispatchState.FAILED
                entry.error = e
                result.failed.append(entry)
                logger.error("Build dispatch failed for %s: %s", entry.key, e)
                return

        entry.state = DispatchState.COMPLETED
        result.outcomes.append(outcome)
        result.identifiers.extend(outcome.identifiers)


__all__ = ["BuildScheduler", "Dispatch", "ScheduleResult", "is_ready"]
