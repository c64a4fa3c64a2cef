import json
import os
from pathlib import Path

import pytest

from banward.datatypes.schedule_datatypes import ActionKind, ScheduledAction
from banward.scheduler.errors import CorruptStateError, ScheduleStoreError
from banward.scheduler.schedule_store import ScheduleStore


def _actions(count: int) -> list[ScheduledAction]:
    return [
        ScheduledAction(scope_id=100 + i, subject_id=200 + i, due_at=1_700_000_000_000 + i * 1000)
        for i in range(count)
    ]


def test_load_missing_file_returns_empty(store: ScheduleStore) -> None:
    assert store.load() == []


@pytest.mark.parametrize("content", ["", "   \n\t"])
def test_load_blank_file_returns_empty(store: ScheduleStore, store_path: Path, content: str) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(content, encoding="utf-8")

    assert store.load() == []


@pytest.mark.parametrize("count", [0, 1, 25])
def test_save_then_load_round_trips(store: ScheduleStore, count: int) -> None:
    actions = _actions(count)

    store.save(actions)

    assert store.load() == actions


def test_save_of_loaded_record_leaves_content_unchanged(store: ScheduleStore, store_path: Path) -> None:
    store.save(_actions(3))
    before = json.loads(store_path.read_text(encoding="utf-8"))

    store.save(store.load())

    assert json.loads(store_path.read_text(encoding="utf-8")) == before


def test_save_writes_expected_layout(store: ScheduleStore, store_path: Path) -> None:
    store.save([ScheduledAction(scope_id=1, subject_id=2, due_at=3)])

    assert json.loads(store_path.read_text(encoding="utf-8")) == [
        {"scope_id": 1, "subject_id": 2, "due_at": 3, "kind": "lift_ban"}
    ]


def test_load_defaults_missing_kind(store: ScheduleStore, store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(json.dumps([{"scope_id": 1, "subject_id": 2, "due_at": 3}]), encoding="utf-8")

    assert store.load() == [ScheduledAction(1, 2, 3, ActionKind.LIFT_BAN)]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"scope_id": 1}),
        json.dumps(["oops"]),
        json.dumps([{"scope_id": 1, "subject_id": 2}]),
        json.dumps([{"scope_id": "1", "subject_id": 2, "due_at": 3}]),
        json.dumps([{"scope_id": 1, "subject_id": 2, "due_at": True}]),
        json.dumps([{"scope_id": 1, "subject_id": 2, "due_at": 3.5}]),
        json.dumps([{"scope_id": 1, "subject_id": 2, "due_at": 3, "kind": "explode"}]),
        "[" * 100_000,
        '[{"scope_id": ' + "9" * 5000 + ', "subject_id": 2, "due_at": 3}]',
    ],
    ids=[
        "invalid-json", "not-a-list", "entry-not-object", "missing-field", "string-id",
        "bool-due-at", "float-due-at", "unknown-kind", "deep-nesting", "oversized-integer",
    ],
)
def test_load_rejects_malformed_record(store: ScheduleStore, store_path: Path, content: str) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text(content, encoding="utf-8")

    with pytest.raises(CorruptStateError):
        store.load()


def test_load_rejects_invalid_utf8(store: ScheduleStore, store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_bytes(b"\xff\xfe\x00garbage")

    with pytest.raises(CorruptStateError):
        store.load()


def test_failed_save_keeps_previous_record(
    store: ScheduleStore, store_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    original = _actions(2)
    store.save(original)

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)

    with pytest.raises(ScheduleStoreError):
        store.save(_actions(5))

    monkeypatch.undo()
    assert store.load() == original
    assert [p.name for p in store_path.parent.iterdir()] == [store_path.name]


def test_save_error_is_an_oserror(store: ScheduleStore, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_fsync(fd):
        raise OSError("io")

    monkeypatch.setattr(os, "fsync", broken_fsync)

    with pytest.raises(OSError):
        store.save(_actions(1))


def test_quarantine_moves_record_aside(store: ScheduleStore, store_path: Path) -> None:
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{broken", encoding="utf-8")

    moved = store.quarantine()

    assert moved is not None
    assert moved.read_text(encoding="utf-8") == "{broken"
    assert moved.name.startswith("tempbans.json.corrupt-")
    assert not store_path.exists()


def test_quarantine_without_record_returns_none(store: ScheduleStore) -> None:
    assert store.quarantine() is None
