"""
Durable scheduler for lifting temporary bans.

``UnbanScheduler`` wires the store, registry, timer engine and reconciler
together and is the only object the command layer talks to. It is created
once at startup and passed explicitly to the cogs that need it.

Lifecycle::

    scheduler = UnbanScheduler(ScheduleStore(path), executor)
    await scheduler.start()          # reconcile the persisted schedule
    await scheduler.enqueue(guild_id, user_id, due_at_ms)
    await scheduler.cancel(guild_id, user_id)
    await scheduler.shutdown()       # disarm timers, keep the record on disk
"""

from __future__ import annotations

import asyncio
from typing import List

from banward.datatypes.schedule_datatypes import (
    ActionExecutor,
    ActionKind,
    Clock,
    ScheduledAction,
    now_ms,
)
from banward.scheduler.errors import SchedulerNotReadyError
from banward.scheduler.reconciler import Reconciler, ReconcileReport
from banward.scheduler.schedule_registry import ScheduleRegistry
from banward.scheduler.schedule_store import ScheduleStore
from banward.scheduler.timer_engine import TimerEngine
from banward.util.logger import get_logger

logger = get_logger("unban_scheduler")


class UnbanScheduler:
    """
    Accepts "lift the ban of user U in guild G at time T" and guarantees it fires once.

    Attributes:
        store (ScheduleStore): Durable record of pending actions.
        registry (ScheduleRegistry): In-memory pending actions.
        engine (TimerEngine): Per-action timers.
        reconciler (Reconciler): Startup catch-up logic.
        min_delay_ms (int): Lower bound applied to ``due_at - now`` on enqueue.
        ready (asyncio.Event): Set once ``start`` finished reconciling.
    """

    def __init__(
        self,
        store: ScheduleStore,
        executor: ActionExecutor,
        *,
        clock: Clock = now_ms,
        min_delay_ms: int = 0,
    ) -> None:
        self.store = store
        self.clock = clock
        self.min_delay_ms = max(0, int(min_delay_ms))
        self.registry = ScheduleRegistry(store)
        self.engine = TimerEngine(self.registry, executor, clock=clock)
        self.reconciler = Reconciler(store, self.registry, self.engine, clock=clock)
        self.ready = asyncio.Event()
        self._started = False
        self._closed = False
        self._failed = False

    async def start(self) -> ReconcileReport:
        """Reconcile the persisted schedule. Must be called exactly once."""
        if self._closed:
            raise SchedulerNotReadyError("Scheduler has been shut down")
        if self._started:
            raise SchedulerNotReadyError("Scheduler has already been started")
        self._started = True

        try:
            report = await self.reconciler.reconcile()
        except BaseException:
            self._failed = True
            raise
        finally:
            # Waiters are released either way; _wait_ready rejects them after a failure
            self.ready.set()
        logger.info("[UNBAN_SCHEDULER] Ready with %d pending unban(s)", len(self.registry))
        return report

    async def enqueue(
        self,
        scope_id: int,
        subject_id: int,
        due_at: int,
        kind: ActionKind = ActionKind.LIFT_BAN,
    ) -> ScheduledAction:
        """Schedule an action, replacing any pending one for the same guild and user.

        ``due_at`` is raised to ``now + min_delay_ms`` when it is earlier.
        An action that is already due fires before this returns.
        """
        await self._wait_ready()

        due_at = max(int(due_at), self.clock() + self.min_delay_ms)
        action = ScheduledAction(scope_id=int(scope_id), subject_id=int(subject_id), due_at=due_at, kind=kind)

        replaced = await self.registry.add(action)
        if replaced is not None:
            self.engine.cancel(replaced.scope_id, replaced.subject_id)
            logger.info(
                "[UNBAN_SCHEDULER] Rescheduled unban for %s in guild %s (was %d, now %d)",
                subject_id, scope_id, replaced.due_at, due_at,
            )
        else:
            logger.info(
                "[UNBAN_SCHEDULER] Scheduled unban for %s in guild %s at %d",
                subject_id, scope_id, due_at,
            )

        await self.engine.arm(action)
        return action

    async def cancel(self, scope_id: int, subject_id: int) -> bool:
        """Drop a pending action. Returns True if one was scheduled."""
        await self._wait_ready()

        self.engine.cancel(scope_id, subject_id)
        removed = await self.registry.remove(scope_id, subject_id)
        if removed is None:
            return False

        logger.info("[UNBAN_SCHEDULER] Cancelled unban for %s in guild %s", subject_id, scope_id)
        return True

    def list(self, scope_id: int | None = None) -> List[ScheduledAction]:
        """Pending actions, earliest first, optionally limited to one guild."""
        actions = self.registry.list()
        if scope_id is None:
            return actions
        return [action for action in actions if action.scope_id == scope_id]

    async def shutdown(self) -> None:
        """Disarm pending timers. The record stays on disk for the next start."""
        if self._closed:
            return
        self._closed = True
        # Wake callers still waiting for start so they see the closed state.
        self.ready.set()
        await self.engine.shutdown()
        if self.registry.dirty:
            await self.registry.persist()
        logger.info("[UNBAN_SCHEDULER] Stopped with %d pending unban(s)", len(self.registry))

    async def _wait_ready(self) -> None:
        self._check_usable()
        await self.ready.wait()
        self._check_usable()

    def _check_usable(self) -> None:
        if self._closed:
            raise SchedulerNotReadyError("Scheduler has been shut down")
        if self._failed:
            raise SchedulerNotReadyError("Scheduler failed to reconcile its schedule on start")
