"""
Durable storage for pending scheduled actions.

The whole schedule lives in one JSON file holding an array of objects::

    [{"scope_id": 1, "subject_id": 2, "due_at": 1700000000000, "kind": "lift_ban"}]

Writes go to a temporary file in the same directory which is fsync'ed and
then moved over the target with ``os.replace``, so a crash or a failed write
never leaves a half-written record behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List

from banward.datatypes.schedule_datatypes import ActionKind, ScheduledAction, now_ms
from banward.scheduler.errors import CorruptStateError, ScheduleStoreError
from banward.util.logger import get_logger

logger = get_logger("schedule_store")

_FIELDS = ("scope_id", "subject_id", "due_at")


def _parse_entry(index: int, entry: Any) -> ScheduledAction:
    if not isinstance(entry, dict):
        raise CorruptStateError(f"entry {index} is {type(entry).__name__}, expected object")

    values = {}
    for field in _FIELDS:
        value = entry.get(field)
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, int) or isinstance(value, bool):
            raise CorruptStateError(f"entry {index} has invalid {field!r}: {value!r}")
        values[field] = value

    raw_kind = entry.get("kind", ActionKind.LIFT_BAN.value)
    try:
        kind = ActionKind(raw_kind)
    except ValueError:
        raise CorruptStateError(f"entry {index} has unknown kind {raw_kind!r}") from None

    return ScheduledAction(kind=kind, **values)


class ScheduleStore:
    """Read and atomically rewrite the schedule record at ``path``."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> List[ScheduledAction]:
        """Return every persisted action, in record order.

        A missing or blank file is an empty schedule.

        Raises
        ------
        CorruptStateError
            The file has content that is not a valid schedule record.
        ScheduleStoreError
            The file exists but could not be read.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("[SCHEDULE_STORE] No record at %s, starting empty", self.path)
            return []
        except UnicodeDecodeError as exc:
            raise CorruptStateError(f"{self.path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise ScheduleStoreError(f"Failed to read {self.path}: {exc}") from exc

        if not raw.strip():
            return []

        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            # JSONDecodeError, oversized integer literals and runaway nesting
            raise CorruptStateError(f"{self.path} is not a readable JSON record: {exc}") from exc

        if not isinstance(payload, list):
            raise CorruptStateError(f"{self.path} holds {type(payload).__name__}, expected a list")

        actions = [_parse_entry(index, entry) for index, entry in enumerate(payload)]
        logger.debug("[SCHEDULE_STORE] Loaded %d action(s) from %s", len(actions), self.path)
        return actions

    def save(self, actions: Iterable[ScheduledAction]) -> None:
        """Replace the record with ``actions``.

        Raises
        ------
        ScheduleStoreError
            The record could not be written. The previous record is left intact.
        """
        payload = [action.to_dict() for action in actions]
        data = json.dumps(payload, indent=2)

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise ScheduleStoreError(f"Failed to write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("[SCHEDULE_STORE] Could not remove temp file %s", tmp_name)

        logger.debug("[SCHEDULE_STORE] Saved %d action(s) to %s", len(payload), self.path)

    def quarantine(self) -> Path | None:
        """Move an unreadable record aside so the next save does not destroy it.

        Returns the new path, or None when there was nothing to move or the
        rename failed.
        """
        target = self.path.with_name(f"{self.path.name}.corrupt-{now_ms()}")
        try:
            os.replace(self.path, target)
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("[SCHEDULE_STORE] Could not quarantine %s: %s", self.path, exc)
            return None

        logger.warning("[SCHEDULE_STORE] Moved corrupt record to %s", target)
        return target
