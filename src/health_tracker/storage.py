"""Repositorio del documento de salud: inicializacion, accesores y CRUD por fecha."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import date
from pathlib import Path
from typing import Any

from health_tracker import dates
from health_tracker.backends.base import (
    StorageBackend,
    StorageError,
    StorageQuotaError,
)
from health_tracker.model import (
    DEFAULT_SETTINGS,
    Entry,
    Goals,
    HealthDocument,
    StoreResult,
    empty_document,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "healthTrackerData"
DEFAULT_DATA_PATH = Path(__file__).resolve().parent / "data" / "default.json"


class RecordStore:
    """Single source of truth for the health document.

    The document lives as JSON text under one key of the injected backend.
    Every read parses a fresh copy, so callers never share state with the
    store. Backend failures are logged and returned as ``StoreResult`` (writes)
    or empty values (reads); nothing here raises to the caller.
    """

    def __init__(
        self,
        backend: StorageBackend,
        *,
        default_data_path: Path | None = DEFAULT_DATA_PATH,
        key: str = STORAGE_KEY,
    ) -> None:
        self._backend = backend
        self._default_data_path = default_data_path
        self._key = key

    # -- documento completo -------------------------------------------------

    def initialize(self) -> StoreResult:
        """Create the document on first run; no-op when it already exists.

        A backend that can't be read is a failure, never a first run.
        """
        try:
            raw = self._backend.get(self._key)
        except StorageError as exc:
            logger.error("Storage unavailable: %s", exc)
            return StoreResult.fail(f"Storage unavailable: {exc}")
        if raw is not None:
            logger.debug("Existing data found under %s", self._key)
            return StoreResult.ok("Existing data kept")
        logger.info("No existing data found, loading defaults")
        return self.load_default_data()

    def has_data(self) -> bool:
        return self._read_raw() is not None

    def load_default_data(self) -> StoreResult:
        """Persist the bundled dataset, or the empty skeleton if it can't be read."""
        try:
            document = _read_default_document(self._default_data_path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load default data: %s", exc)
            result = self.save_all(empty_document())
            if result:
                return StoreResult.ok("Initialized with empty document")
            return result

        document["entries"] = sort_entries(document.get("entries") or [])
        result = self.save_all(document)
        if result:
            logger.info("Default data loaded from %s", self._default_data_path)
            return StoreResult.ok("Default data loaded")
        return result

    def get_all(self) -> HealthDocument | None:
        """Parsed document, or None when absent, unreadable or corrupt."""
        return _parse_document(self._read_raw())

    def save_all(self, document: Mapping[str, Any]) -> StoreResult:
        """Serialize and persist the whole document."""
        try:
            payload = json.dumps(document, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to serialize data: %s", exc)
            return StoreResult.fail(f"Data is not serializable: {exc}")
        try:
            self._backend.set(self._key, payload)
        except StorageQuotaError as exc:
            logger.error("Failed to save data, quota exceeded: %s", exc)
            return StoreResult.fail(f"Storage quota exceeded: {exc}")
        except StorageError as exc:
            logger.error("Failed to save data: %s", exc)
            return StoreResult.fail(f"Storage unavailable: {exc}")
        return StoreResult.ok()

    def clear_all(self) -> StoreResult:
        """Remove the document (use with caution)."""
        try:
            self._backend.remove(self._key)
        except StorageError as exc:
            logger.error("Failed to clear data: %s", exc)
            return StoreResult.fail(f"Storage unavailable: {exc}")
        logger.info("All data cleared")
        return StoreResult.ok("All data cleared")

    def get_storage_size(self) -> int:
        """Size in bytes of the stored JSON text."""
        raw = self._read_raw()
        return len(raw.encode("utf-8")) if raw is not None else 0

    # -- perfil, objetivos y preferencias -----------------------------------

    def get_user_profile(self) -> dict[str, Any]:
        return _section(self.get_all(), "user")

    def update_user_profile(self, user: Mapping[str, Any]) -> StoreResult:
        return self._merge_section("user", user)

    def get_goals(self) -> Goals:
        return _section(self.get_all(), "goals")

    def update_goals(self, goals: Mapping[str, Any]) -> StoreResult:
        return self._merge_section("goals", goals)

    def get_settings(self) -> dict[str, Any]:
        settings = _section(self.get_all(), "settings")
        return settings or dict(DEFAULT_SETTINGS)

    def update_settings(self, settings: Mapping[str, Any]) -> StoreResult:
        return self._merge_section("settings", settings)

    # -- entradas -----------------------------------------------------------

    def get_entries(self) -> list[Entry]:
        """Entries snapshot, most recent first as stored."""
        document = self.get_all()
        if document is None:
            return []
        entries = document.get("entries")
        if not isinstance(entries, list):
            return []
        return [e for e in entries if isinstance(e, dict)]

    def get_entry_by_date(self, day: dates.DayLike) -> Entry | None:
        target = dates.try_parse_day(day)
        if target is None:
            return None
        for entry in self.get_entries():
            if entry_day(entry) == target:
                return entry
        return None

    def save_entry(self, entry: Mapping[str, Any]) -> StoreResult:
        """Upsert by date: existing fields are kept unless overwritten.

        Entries are re-sorted (newest first) before the document is saved.
        """
        day = dates.try_parse_day(entry.get("date"))
        if day is None:
            return StoreResult.fail("Entry requires a valid date (YYYY-MM-DD)")
        incoming = {**entry, "date": day.isoformat()}

        def apply(document: HealthDocument) -> None:
            entries = [e for e in document.get("entries") or [] if isinstance(e, dict)]
            for idx, existing in enumerate(entries):
                if entry_day(existing) == day:
                    entries[idx] = {**existing, **incoming}
                    break
            else:
                entries.append(incoming)
            document["entries"] = sort_entries(entries)

        return self._mutate(apply)

    def delete_entry(self, day: dates.DayLike) -> StoreResult:
        """Remove the entry for ``day``; absent dates are a no-op."""
        target = dates.try_parse_day(day)
        if target is None:
            return StoreResult.fail(f"Invalid date: {day!r}")
        try:
            document = _parse_document(self._backend.get(self._key))
        except StorageError as exc:
            logger.error("Storage unavailable: %s", exc)
            return StoreResult.fail(f"Storage unavailable: {exc}")
        if document is None:
            return StoreResult.ok("Nothing to delete")
        entries = [e for e in document.get("entries") or [] if isinstance(e, dict)]
        kept = [e for e in entries if entry_day(e) != target]
        if len(kept) == len(entries):
            return StoreResult.ok("Nothing to delete")
        document["entries"] = sort_entries(kept)
        return self.save_all(document)

    def get_entries_in_range(
        self, start: dates.DayLike, end: dates.DayLike
    ) -> list[Entry]:
        """Entries with ``start <= date <= end`` (inclusive); [] for bad bounds."""
        start_day = dates.try_parse_day(start)
        end_day = dates.try_parse_day(end)
        if start_day is None or end_day is None:
            return []
        out: list[Entry] = []
        for entry in self.get_entries():
            day = entry_day(entry)
            if day is not None and start_day <= day <= end_day:
                out.append(entry)
        return out

    def get_last_n_days(self, n: int, today: date | None = None) -> list[Entry]:
        """Entries within ``[today - n, today]``, at most ``n`` of them."""
        if n <= 0:
            return []
        end_day = today or dates.today()
        return self.get_entries_in_range(dates.days_ago(n, end_day), end_day)[:n]

    def get_current_week_entries(self, today: date | None = None) -> list[Entry]:
        end_day = today or dates.today()
        return self.get_entries_in_range(dates.week_start(end_day), end_day)

    def get_current_month_entries(self, today: date | None = None) -> list[Entry]:
        end_day = today or dates.today()
        return self.get_entries_in_range(dates.month_start(end_day), end_day)

    # -- import / export ----------------------------------------------------

    def export_json(self) -> str:
        """Whole document as pretty-printed JSON (``null`` when there is none)."""
        return json.dumps(self.get_all(), indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> StoreResult:
        """Replace the document with ``text`` after minimal validation.

        The stored document is untouched when validation fails.
        """
        try:
            parsed: Any = json.loads(text)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.error("Import failed: %s", exc)
            return StoreResult.fail(f"Invalid JSON: {exc}")
        if not isinstance(parsed, dict) or not isinstance(
            parsed.get("entries"), list
        ):
            logger.error("Import failed: payload without an entries list")
            return StoreResult.fail("Invalid data format")
        result = self.save_all(parsed)
        if not result:
            return result
        return StoreResult.ok("Data imported successfully")

    # -- internos -----------------------------------------------------------

    def _read_raw(self) -> str | None:
        try:
            return self._backend.get(self._key)
        except StorageError as exc:
            logger.error("Storage unavailable: %s", exc)
            return None

    def _mutate(self, apply: Callable[[HealthDocument], None]) -> StoreResult:
        # Absent or corrupt documents are replaced on this explicit write;
        # an unreadable backend fails without writing.
        try:
            document = _parse_document(self._backend.get(self._key))
        except StorageError as exc:
            logger.error("Storage unavailable: %s", exc)
            return StoreResult.fail(f"Storage unavailable: {exc}")
        if document is None:
            document = empty_document()
        apply(document)
        return self.save_all(document)

    def _merge_section(self, name: str, values: Mapping[str, Any]) -> StoreResult:
        def apply(document: HealthDocument) -> None:
            document[name] = {**_section(document, name), **values}

        return self._mutate(apply)


def entry_day(entry: Mapping[str, Any]) -> date | None:
    """Parsed ``date`` of an entry, None if missing or malformed."""
    return dates.try_parse_day(entry.get("date"))


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Newest first; entries without a valid date go last."""
    return sorted(
        entries,
        key=lambda e: entry_day(e) or date.min,
        reverse=True,
    )


def _section(document: HealthDocument | None, name: str) -> dict[str, Any]:
    if document is None:
        return {}
    value = document.get(name)
    return dict(value) if isinstance(value, dict) else {}


def _parse_document(raw: str | None) -> HealthDocument | None:
    if raw is None:
        return None
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse stored data: %s", exc)
        return None
    if not isinstance(parsed, dict):
        logger.error("Stored data is a %s, expected an object", type(parsed).__name__)
        return None
    return parsed


def _read_default_document(path: Path | None) -> HealthDocument:
    if path is None:
        raise ValueError("no default dataset configured")
    parsed: Any = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(parsed, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return parsed
