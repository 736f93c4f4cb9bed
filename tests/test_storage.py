from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from health_tracker.backends.base import StorageUnavailableError
from health_tracker.backends.memory import MemoryBackend
from health_tracker.backends.sqlite import SQLiteBackend
from health_tracker.model import empty_document
from health_tracker.storage import STORAGE_KEY, RecordStore, sort_entries


def _store(backend: MemoryBackend | None = None) -> RecordStore:
    store = RecordStore(backend or MemoryBackend(), default_data_path=None)
    assert store.initialize().success
    return store


def _dates(store: RecordStore) -> list[str]:
    return [e["date"] for e in store.get_entries()]


def test_initialize_without_default_data_writes_skeleton() -> None:
    backend = MemoryBackend()
    store = RecordStore(backend, default_data_path=None)
    result = store.initialize()
    assert result.success
    assert store.get_all() == empty_document()
    assert json.loads(backend.get(STORAGE_KEY) or "") == {
        "user": {},
        "goals": {},
        "settings": {"theme": "light", "notifications": True},
        "entries": [],
    }


def test_initialize_loads_default_dataset_and_is_idempotent(tmp_path: Path) -> None:
    default = tmp_path / "default.json"
    default.write_text(
        json.dumps(
            {
                "user": {"name": "Ana"},
                "goals": {"steps": 8000},
                "settings": {"theme": "dark", "notifications": False},
                "entries": [
                    {"date": "2024-01-01", "steps": 100},
                    {"date": "2024-01-03", "steps": 300},
                ],
            }
        ),
        encoding="utf-8",
    )
    store = RecordStore(MemoryBackend(), default_data_path=default)
    assert store.initialize().message == "Default data loaded"
    assert store.get_user_profile() == {"name": "Ana"}
    assert _dates(store) == ["2024-01-03", "2024-01-01"]

    store.save_entry({"date": "2024-01-05", "steps": 500})
    second = store.initialize()
    assert second.success
    assert _dates(store) == ["2024-01-05", "2024-01-03", "2024-01-01"]


def test_initialize_falls_back_on_malformed_default(tmp_path: Path) -> None:
    default = tmp_path / "default.json"
    default.write_text("{not json", encoding="utf-8")
    store = RecordStore(MemoryBackend(), default_data_path=default)
    result = store.initialize()
    assert result.success
    assert result.message == "Initialized with empty document"
    assert store.get_all() == empty_document()


def test_bundled_default_dataset_is_valid() -> None:
    store = RecordStore(MemoryBackend())
    assert store.initialize().message == "Default data loaded"
    entries = store.get_entries()
    assert entries
    assert entries == sort_entries(entries)
    assert "heartRate" in store.get_goals()


def test_get_all_returns_none_on_corrupt_data_and_keeps_it() -> None:
    backend = MemoryBackend({STORAGE_KEY: "{broken"})
    store = RecordStore(backend, default_data_path=None)
    assert store.get_all() is None
    assert store.get_entries() == []
    assert store.get_goals() == {}
    assert backend.get(STORAGE_KEY) == "{broken"


def test_get_all_rejects_non_object_document() -> None:
    store = RecordStore(MemoryBackend({STORAGE_KEY: "[1, 2]"}), default_data_path=None)
    assert store.get_all() is None


def test_save_entry_upsert_merges_fields() -> None:
    store = _store()
    store.save_entry({"date": "2024-01-03", "steps": 5000, "mood": "good"})
    store.save_entry({"date": "2024-01-03", "steps": 7000, "sleep": 7.5})

    entries = store.get_entries()
    assert len(entries) == 1
    assert entries[0] == {
        "date": "2024-01-03",
        "steps": 7000,
        "mood": "good",
        "sleep": 7.5,
    }


def test_save_entry_keeps_descending_order_without_duplicates() -> None:
    store = _store()
    for day in ["2024-01-02", "2024-01-10", "2023-12-31", "2024-01-05", "2024-01-10"]:
        assert store.save_entry({"date": day, "steps": 1}).success
    assert _dates(store) == ["2024-01-10", "2024-01-05", "2024-01-02", "2023-12-31"]

    store.delete_entry("2024-01-05")
    assert _dates(store) == ["2024-01-10", "2024-01-02", "2023-12-31"]


def test_save_entry_normalizes_date_values() -> None:
    store = _store()
    store.save_entry({"date": date(2024, 2, 1), "water": 4})
    store.save_entry({"date": "2024-02-01T08:30:00", "water": 6})
    assert store.get_entries() == [{"date": "2024-02-01", "water": 6}]


@pytest.mark.parametrize("bad", [{}, {"date": ""}, {"date": "01/02/2024"}])
def test_save_entry_rejects_invalid_date(bad: dict[str, str]) -> None:
    store = _store()
    result = store.save_entry({**bad, "steps": 10})
    assert not result.success
    assert store.get_entries() == []


def test_save_entry_on_corrupt_document_starts_fresh() -> None:
    backend = MemoryBackend({STORAGE_KEY: "{broken"})
    store = RecordStore(backend, default_data_path=None)
    assert store.save_entry({"date": "2024-01-01", "steps": 10}).success
    assert _dates(store) == ["2024-01-01"]


def test_delete_entry_absent_is_noop() -> None:
    store = _store()
    store.save_entry({"date": "2024-01-01", "steps": 10})
    result = store.delete_entry("2023-01-01")
    assert result.success
    assert _dates(store) == ["2024-01-01"]


def test_delete_entry_invalid_date_fails() -> None:
    store = _store()
    assert not store.delete_entry("yesterday").success


def test_get_entry_by_date() -> None:
    store = _store()
    store.save_entry({"date": "2024-01-01", "steps": 10})
    assert store.get_entry_by_date("2024-01-01") == {"date": "2024-01-01", "steps": 10}
    assert store.get_entry_by_date(date(2024, 1, 1)) is not None
    assert store.get_entry_by_date("2024-01-02") is None
    assert store.get_entry_by_date("garbage") is None


def test_entries_in_range_is_inclusive() -> None:
    store = _store()
    for day in ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04"]:
        store.save_entry({"date": day})
    single = store.get_entries_in_range("2024-01-02", "2024-01-02")
    assert [e["date"] for e in single] == ["2024-01-02"]
    span = store.get_entries_in_range("2024-01-02", date(2024, 1, 4))
    assert [e["date"] for e in span] == ["2024-01-04", "2024-01-03", "2024-01-02"]
    assert store.get_entries_in_range("2024-02-01", "2024-02-28") == []


def test_last_n_days_window_and_limit() -> None:
    store = _store()
    for day in ["2024-03-10", "2024-03-09", "2024-03-08", "2024-03-05", "2024-03-11"]:
        store.save_entry({"date": day})
    today = date(2024, 3, 10)
    # 2024-03-11 is in the future, 2024-03-05 is outside [03-07, 03-10]
    assert [e["date"] for e in store.get_last_n_days(3, today=today)] == [
        "2024-03-10",
        "2024-03-09",
        "2024-03-08",
    ]
    assert [e["date"] for e in store.get_last_n_days(1, today=today)] == [
        "2024-03-10"
    ]
    assert store.get_last_n_days(0, today=today) == []


def test_current_week_and_month() -> None:
    store = _store()
    for day in ["2024-05-01", "2024-05-12", "2024-05-14", "2024-04-30"]:
        store.save_entry({"date": day})
    tuesday = date(2024, 5, 14)
    assert [e["date"] for e in store.get_current_week_entries(today=tuesday)] == [
        "2024-05-14",
        "2024-05-12",
    ]
    assert [e["date"] for e in store.get_current_month_entries(today=tuesday)] == [
        "2024-05-14",
        "2024-05-12",
        "2024-05-01",
    ]


def test_profile_goals_and_settings_merge() -> None:
    store = _store()
    store.update_user_profile({"name": "Ana", "age": 30})
    store.update_user_profile({"age": 31})
    assert store.get_user_profile() == {"name": "Ana", "age": 31}

    store.update_goals({"steps": 10000})
    store.update_goals({"heartRate": {"min": 60, "max": 80}})
    assert store.get_goals() == {"steps": 10000, "heartRate": {"min": 60, "max": 80}}

    store.update_settings({"reminderTime": "08:00"})
    assert store.get_settings() == {
        "theme": "light",
        "notifications": True,
        "reminderTime": "08:00",
    }


def test_settings_default_when_no_data() -> None:
    store = RecordStore(MemoryBackend(), default_data_path=None)
    assert store.get_settings() == {"theme": "light", "notifications": True}


def test_export_import_round_trip() -> None:
    store = _store()
    store.update_goals({"steps": 9000})
    store.save_entry({"date": "2024-01-02", "steps": 4000, "notes": "ñandú"})
    store.save_entry({"date": "2024-01-01", "sleep": 7})
    before = store.get_all()

    exported = store.export_json()
    assert exported.startswith("{\n  ")
    assert store.import_json(exported).success
    assert store.get_all() == before


def test_import_into_other_store() -> None:
    source = _store()
    source.save_entry({"date": "2024-01-01", "steps": 1})
    target = _store()
    result = target.import_json(source.export_json())
    assert result.success
    assert result.message == "Data imported successfully"
    assert target.get_all() == source.get_all()


@pytest.mark.parametrize(
    "payload",
    ["not json", "[]", '{"user": {}}', '{"entries": {"a": 1}}', '{"entries": null}'],
)
def test_import_rejects_invalid_payload_without_mutation(payload: str) -> None:
    store = _store()
    store.save_entry({"date": "2024-01-01", "steps": 1})
    before = store.get_all()
    result = store.import_json(payload)
    assert result.success is False
    assert result.message
    assert store.get_all() == before


def test_unavailable_storage_degrades_to_results() -> None:
    backend = MemoryBackend(available=False)
    store = RecordStore(backend, default_data_path=None)
    assert store.has_data() is False
    assert store.get_all() is None
    assert store.get_entries() == []
    assert store.get_storage_size() == 0
    assert not store.initialize().success
    result = store.save_entry({"date": "2024-01-01"})
    assert not result.success
    assert "unavailable" in result.message
    assert not store.clear_all().success


def test_quota_exceeded_is_a_failed_save() -> None:
    backend = MemoryBackend(quota_bytes=200)
    store = _store(backend)
    before = store.get_all()
    result = store.save_entry({"date": "2024-01-01", "notes": "x" * 500})
    assert not result.success
    assert "quota" in result.message.lower()
    assert store.get_all() == before


def test_save_all_rejects_unserializable_document() -> None:
    store = _store()
    result = store.save_all({"entries": [object()]})
    assert not result.success


def test_clear_all_and_storage_size() -> None:
    store = _store()
    assert store.get_storage_size() == len(json.dumps(empty_document()).encode())
    assert store.clear_all().success
    assert store.has_data() is False
    assert store.get_storage_size() == 0


def test_store_on_sqlite_backend_persists(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "health.sqlite3"
    store = RecordStore(SQLiteBackend(db_path), default_data_path=None)
    store.initialize()
    store.save_entry({"date": "2024-01-01", "steps": 1234})

    reopened = RecordStore(SQLiteBackend(db_path), default_data_path=None)
    assert reopened.initialize().message == "Existing data kept"
    assert reopened.get_entry_by_date("2024-01-01") == {
        "date": "2024-01-01",
        "steps": 1234,
    }


def test_sort_entries_puts_invalid_dates_last() -> None:
    entries = [{"date": "bad"}, {"date": "2024-01-01"}, {"date": "2024-02-01"}]
    assert [e["date"] for e in sort_entries(entries)] == [
        "2024-02-01",
        "2024-01-01",
        "bad",
    ]


class _FlakyReadBackend(MemoryBackend):
    """Memory backend whose next ``get`` calls fail."""

    def __init__(self) -> None:
        super().__init__()
        self.failing_reads = 0

    def get(self, key: str) -> str | None:
        if self.failing_reads:
            self.failing_reads -= 1
            raise StorageUnavailableError("read failed")
        return super().get(key)


def _flaky_store_with_history() -> tuple[_FlakyReadBackend, RecordStore]:
    backend = _FlakyReadBackend()
    store = _store(backend)
    for day in ["2024-01-01", "2024-01-02", "2024-01-03"]:
        store.save_entry({"date": day, "steps": 100})
    store.update_goals({"steps": 9000})
    return backend, store


def test_failed_read_does_not_overwrite_on_save() -> None:
    backend, store = _flaky_store_with_history()
    backend.failing_reads = 1
    result = store.save_entry({"date": "2024-01-04", "steps": 1})
    assert not result.success
    assert "unavailable" in result.message
    assert _dates(store) == ["2024-01-03", "2024-01-02", "2024-01-01"]
    assert store.get_goals() == {"steps": 9000}

    assert store.save_entry({"date": "2024-01-04", "steps": 1}).success
    assert len(store.get_entries()) == 4


def test_failed_read_does_not_overwrite_on_update_or_delete() -> None:
    backend, store = _flaky_store_with_history()
    backend.failing_reads = 1
    assert not store.update_user_profile({"name": "Ana"}).success
    backend.failing_reads = 1
    assert not store.delete_entry("2024-01-01").success
    assert len(store.get_entries()) == 3
    assert store.get_goals() == {"steps": 9000}


def test_initialize_with_failed_read_keeps_existing_data() -> None:
    backend, store = _flaky_store_with_history()
    backend.failing_reads = 1
    reopened = RecordStore(backend)
    result = reopened.initialize()
    assert not result.success
    assert _dates(reopened) == ["2024-01-03", "2024-01-02", "2024-01-01"]
    assert reopened.get_goals() == {"steps": 9000}


def test_entries_in_range_with_invalid_bounds_is_empty() -> None:
    store = _store()
    store.save_entry({"date": "2024-01-05"})
    assert store.get_entries_in_range("garbage", "2024-01-31") == []
    assert store.get_entries_in_range("2024-01-01", None) == []  # type: ignore[arg-type]
