"""Startup reconciliation of the persisted schedule."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List

from banward.datatypes.schedule_datatypes import Clock, ScheduledAction, ScheduleKey, now_ms
from banward.scheduler.errors import CorruptStateError, ScheduleStoreError
from banward.scheduler.schedule_registry import ScheduleRegistry
from banward.scheduler.schedule_store import ScheduleStore
from banward.scheduler.timer_engine import TimerEngine
from banward.util.logger import get_logger

logger = get_logger("reconciler")


@dataclass
class ReconcileReport:
    """Outcome of one startup reconciliation."""
    loaded: int = 0
    fired: int = 0
    armed: int = 0
    corrupt: bool = False
    persisted: bool = False


class Reconciler:
    """
    Rebuilds the registry from disk and catches up on missed deadlines.

    Overdue actions are fired through the same handler the timers use, but
    their removals are batched into a single save at the end.
    """

    def __init__(
        self,
        store: ScheduleStore,
        registry: ScheduleRegistry,
        engine: TimerEngine,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self.store = store
        self.registry = registry
        self.engine = engine
        self.clock = clock

    def load(self, report: ReconcileReport) -> List[ScheduledAction] | None:
        """Read the record. Returns None when it could not be read at all."""
        try:
            actions = self.store.load()
        except CorruptStateError as exc:
            logger.error(
                "[RECONCILER] Schedule record is corrupt, starting with an empty schedule: %s", exc
            )
            report.corrupt = True
            self.store.quarantine()
            return []
        except ScheduleStoreError as exc:
            logger.error("[RECONCILER] Could not read schedule record, starting empty: %s", exc)
            return None

        # Later entries win, matching replace-on-add semantics
        unique: Dict[ScheduleKey, ScheduledAction] = {}
        for action in actions:
            if action.key in unique:
                logger.warning("[RECONCILER] Duplicate entry for %s in record, keeping the later one", action.key)
            unique[action.key] = action
        return list(unique.values())

    async def reconcile(self) -> ReconcileReport:
        report = ReconcileReport()
        actions = self.load(report)
        readable = actions is not None
        actions = actions or []
        report.loaded = len(actions)

        for action in actions:
            self.registry.insert_without_persist(action)

        now = self.clock()
        overdue = [action for action in actions if action.is_due(now)]
        upcoming = [action for action in actions if not action.is_due(now)]

        if overdue:
            logger.info("[RECONCILER] Firing %d overdue action(s) missed during downtime", len(overdue))
            results = await asyncio.gather(
                *(self.engine.fire(action, persist=False) for action in overdue)
            )
            report.fired = sum(1 for fired in results if fired)

        for action in upcoming:
            await self.engine.arm(action)
        report.armed = len(upcoming)

        if readable:
            report.persisted = await self.registry.persist()
        else:
            logger.warning("[RECONCILER] Skipping initial save so the unreadable record is not overwritten")

        logger.info(
            "[RECONCILER] Loaded %d, fired %d overdue, armed %d pending",
            report.loaded, report.fired, report.armed,
        )
        return report
