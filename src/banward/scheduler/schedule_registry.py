"""In-memory index of pending actions, kept in sync with the durable store."""

from __future__ import annotations

import asyncio
from typing import Dict, List

from banward.datatypes.schedule_datatypes import ScheduledAction, ScheduleKey
from banward.scheduler.errors import ScheduleStoreError
from banward.scheduler.schedule_store import ScheduleStore
from banward.util.logger import get_logger

logger = get_logger("schedule_registry")


class ScheduleRegistry:
    """
    Pending actions keyed by ``(scope_id, subject_id)``.

    Every mutation and the save that follows it run under one asyncio lock,
    so concurrent fire, cancel and add calls never interleave their writes.
    A failed save is logged and leaves ``dirty`` set; the in-memory state
    stays authoritative and the next mutation writes the full set again.

    Attributes:
        store (ScheduleStore): Durable backing record.
        lock (asyncio.Lock): Guards ``pending`` together with its save.
        pending (Dict[ScheduleKey, ScheduledAction]): Current schedule.
        dirty (bool): True while memory is ahead of the last successful save.
    """

    def __init__(self, store: ScheduleStore) -> None:
        self.store = store
        self.lock = asyncio.Lock()
        self.pending: Dict[ScheduleKey, ScheduledAction] = {}
        self.dirty: bool = False

    def __len__(self) -> int:
        return len(self.pending)

    def __contains__(self, key: object) -> bool:
        return key in self.pending

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, scope_id: int, subject_id: int) -> ScheduledAction | None:
        return self.pending.get((scope_id, subject_id))

    def is_pending(self, action: ScheduledAction) -> bool:
        """True if ``action`` itself (not a replacement for its key) is still scheduled."""
        return self.pending.get(action.key) == action

    def list(self) -> List[ScheduledAction]:
        """Snapshot of the schedule, earliest deadline first."""
        return sorted(self.pending.values(), key=lambda action: (action.due_at, action.key))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, action: ScheduledAction) -> ScheduledAction | None:
        """Insert ``action``, replacing any pending action for the same key.

        Returns the replaced action so the caller can disarm its timer.
        """
        async with self.lock:
            replaced = self.pending.pop(action.key, None)
            self.pending[action.key] = action
            self._save_locked()

        if replaced is not None:
            logger.debug("[SCHEDULE_REGISTRY] Replaced %s with %s", replaced, action)
        return replaced

    async def remove(
        self,
        scope_id: int,
        subject_id: int,
        *,
        expected: ScheduledAction | None = None,
        persist: bool = True,
    ) -> ScheduledAction | None:
        """Drop the pending action for a key; a no-op if there is none.

        With ``expected`` the entry is only removed while it still equals
        ``expected``, so a stale timer never removes the action that replaced it.
        """
        key = (scope_id, subject_id)
        async with self.lock:
            current = self.pending.get(key)
            if current is None or (expected is not None and current != expected):
                return None

            del self.pending[key]
            if persist:
                self._save_locked()
            else:
                self.dirty = True
        return current

    def insert_without_persist(self, action: ScheduledAction) -> None:
        """Insert a record that is already on disk (startup only)."""
        self.pending[action.key] = action

    async def persist(self) -> bool:
        """Save the current schedule once. Returns True on success."""
        async with self.lock:
            return self._save_locked()

    def _save_locked(self) -> bool:
        try:
            self.store.save(self.list())
        except ScheduleStoreError as exc:
            self.dirty = True
            logger.error(
                "[SCHEDULE_REGISTRY] Failed to persist %d pending action(s): %s",
                len(self.pending), exc,
            )
            return False

        self.dirty = False
        return True
