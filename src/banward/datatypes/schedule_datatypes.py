"""
Data types shared by the unban scheduler components.

Timestamps are INTEGER epoch milliseconds so comparisons are trivial and no
timezone conversion is needed anywhere in the scheduler.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Tuple


ScheduleKey = Tuple[int, int]


class ActionKind(str, Enum):
    """Kinds of delayed actions the scheduler knows how to persist."""

    LIFT_BAN = "lift_ban"


@dataclass(frozen=True)
class ScheduledAction:
    """
    A single pending delayed action.

    Attributes:
        scope_id (int): Guild the action belongs to.
        subject_id (int): User the action applies to.
        due_at (int): Epoch milliseconds at which the action must fire.
        kind (ActionKind): What to do when the action fires.
    """
    scope_id: int
    subject_id: int
    due_at: int
    kind: ActionKind = ActionKind.LIFT_BAN

    @property
    def key(self) -> ScheduleKey:
        return (self.scope_id, self.subject_id)

    def is_due(self, now_ms: int) -> bool:
        return self.due_at <= now_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope_id": self.scope_id,
            "subject_id": self.subject_id,
            "due_at": self.due_at,
            "kind": self.kind.value,
        }


# Executor callback supplied by the command layer.
# Raises ExecutionError when the side effect could not be performed.
ActionExecutor = Callable[[int, int, ActionKind], Awaitable[None]]

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000
