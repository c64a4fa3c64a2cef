"""
One asyncio timer per pending action.

Each armed action gets its own task that sleeps until the deadline and then
runs the fire handler, so a slow or hanging executor call only delays its own
action. Overdue actions skip the task and are fired directly by ``arm``.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List

from banward.datatypes.schedule_datatypes import (
    ActionExecutor,
    Clock,
    ScheduledAction,
    ScheduleKey,
    now_ms,
)
from banward.scheduler.errors import ExecutionError
from banward.scheduler.schedule_registry import ScheduleRegistry
from banward.util.logger import get_logger

logger = get_logger("timer_engine")

# Longest single sleep before the deadline is checked again (one day)
MAX_SLEEP_MS = 24 * 60 * 60 * 1000


class TimerHandle:
    """
    Cancellation handle for one armed action.

    Attributes:
        action (ScheduledAction): The action this timer fires.
        task (asyncio.Task[None] | None): Sleeping task, None for actions fired on arm.
        fired (bool): True once the deadline passed and the fire handler started.
        cancelled (bool): True once the timer was disarmed before firing.
    """

    def __init__(
        self,
        action: ScheduledAction,
        task: asyncio.Task[None] | None = None,
        *,
        fired: bool = False,
    ) -> None:
        self.action = action
        self.task = task
        self.fired = fired
        self.cancelled = False

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()

    def cancel(self) -> bool:
        """Disarm the timer. Returns False if it already fired or finished.

        A fire handler that is already running is never interrupted.
        """
        if self.fired or self.cancelled or self.done:
            return False
        self.cancelled = True
        self.task.cancel()  # type: ignore[union-attr]
        return True


class TimerEngine:
    """
    Arms, cancels and fires per-action timers.

    Attributes:
        registry (ScheduleRegistry): Source of truth for what is still pending.
        executor (ActionExecutor): Callback performing the side effect.
        clock (Clock): Returns the current time in epoch milliseconds.
        timers (Dict[ScheduleKey, TimerHandle]): Armed timers that have not fired.
    """

    def __init__(
        self,
        registry: ScheduleRegistry,
        executor: ActionExecutor,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.clock = clock
        self.timers: Dict[ScheduleKey, TimerHandle] = {}

    async def arm(self, action: ScheduledAction) -> TimerHandle:
        """Schedule ``action`` to fire at its deadline.

        Any timer already armed for the same key is disarmed first. If the
        deadline has passed, the fire handler runs before this returns.
        """
        self.cancel(action.scope_id, action.subject_id)

        delay_ms = action.due_at - self.clock()
        if delay_ms <= 0:
            handle = TimerHandle(action, fired=True)
            await self.fire(action)
            return handle

        handle = TimerHandle(action)
        handle.task = asyncio.get_running_loop().create_task(
            self._sleep_then_fire(handle),
            name=f"banward-unban-{action.scope_id}-{action.subject_id}",
        )
        self.timers[action.key] = handle
        logger.debug("[TIMER_ENGINE] Armed %s in %dms", action.key, delay_ms)
        return handle

    def cancel(self, scope_id: int, subject_id: int) -> bool:
        """Disarm the timer for a key. Returns True if a timer was stopped before firing."""
        handle = self.timers.pop((scope_id, subject_id), None)
        if handle is None:
            return False
        return handle.cancel()

    async def fire(self, action: ScheduledAction, *, persist: bool = True) -> bool:
        """Run the executor for ``action`` and drop it from the registry.

        Returns False without calling the executor when the action was
        cancelled or replaced in the meantime. The entry is removed whatever
        the executor outcome; failures are logged and never retried.
        """
        if not self.registry.is_pending(action):
            logger.debug("[TIMER_ENGINE] %s is no longer pending, skipping fire", action.key)
            return False

        try:
            await self.executor(action.scope_id, action.subject_id, action.kind)
        except asyncio.CancelledError:
            raise
        except ExecutionError as exc:
            logger.warning(
                "[TIMER_ENGINE] %s for user %s in guild %s failed: %s",
                action.kind.value, action.subject_id, action.scope_id, exc,
            )
        except Exception:
            logger.exception(
                "[TIMER_ENGINE] Unexpected error running %s for user %s in guild %s",
                action.kind.value, action.subject_id, action.scope_id,
            )
        else:
            logger.info(
                "[TIMER_ENGINE] Executed %s for user %s in guild %s",
                action.kind.value, action.subject_id, action.scope_id,
            )

        await self.registry.remove(
            action.scope_id, action.subject_id, expected=action, persist=persist
        )
        return True

    async def shutdown(self) -> None:
        """Disarm every timer that has not fired yet and wait for the tasks to exit."""
        handles: List[TimerHandle] = list(self.timers.values())
        self.timers.clear()

        tasks = [handle.task for handle in handles if handle.cancel() and handle.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("[TIMER_ENGINE] Disarmed %d timer(s)", len(tasks))

    async def _sleep_then_fire(self, handle: TimerHandle) -> None:
        # Sleep in bounded slices; far-future deadlines would overflow a float delay
        remaining_ms = handle.action.due_at - self.clock()
        while remaining_ms > 0:
            await asyncio.sleep(min(remaining_ms, MAX_SLEEP_MS) / 1000)
            remaining_ms = handle.action.due_at - self.clock()

        handle.fired = True
        if self.timers.get(handle.action.key) is handle:
            del self.timers[handle.action.key]

        await self.fire(handle.action)
