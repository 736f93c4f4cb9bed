"""CLI para registrar metricas diarias, ver el tablero y exportar reportes."""

from __future__ import annotations

import argparse
import json
import logging
import threading
from collections.abc import Sequence
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from dateutil import tz

from health_tracker import dates
from health_tracker.backends.base import StorageUnavailableError
from health_tracker.backends.sqlite import SQLiteBackend
from health_tracker.config import TrackerConfig, load_config
from health_tracker.dashboard import dashboard_text, entries_table
from health_tracker.export import ReportLayout, write_csv, write_json, write_report_xlsx
from health_tracker.model import Entry, StoreResult
from health_tracker.recommendations import analyze_entry, analyze_trends, daily_tip
from health_tracker.reminders import (
    ReminderScheduler,
    goal_achievements,
    health_alerts,
)
from health_tracker.statistics import (
    calculate_health_score,
    calculate_stats,
    detect_health_flags,
)
from health_tracker.storage import RecordStore

_LOCAL_TZ = tz.tzlocal()

# CLI option -> entry field
_ENTRY_OPTIONS: tuple[tuple[str, str], ...] = (
    ("steps", "steps"),
    ("heart_rate", "heartRate"),
    ("sleep", "sleep"),
    ("water", "water"),
    ("calories", "calories"),
    ("mood", "mood"),
    ("notes", "notes"),
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per operation."""
    parser = argparse.ArgumentParser(
        prog="health-tracker",
        description="Registro diario de salud: métricas, puntaje y reportes.",
    )
    parser.add_argument(
        "--base-dir",
        default=None,
        help="Directorio de datos (default: $HEALTH_TRACKER_HOME o ~/.health_tracker).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log INFO.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Crear el documento si no existe.")
    sub.add_parser("info", help="Ubicación y tamaño de los datos.")

    log = sub.add_parser("log", help="Registrar o actualizar un día.")
    log.add_argument("--date", default=None, help="YYYY-MM-DD (default: hoy).")
    log.add_argument("--steps", type=int)
    log.add_argument("--heart-rate", type=int)
    log.add_argument("--sleep", type=float)
    log.add_argument("--water", type=int)
    log.add_argument("--calories", type=int)
    log.add_argument("--mood")
    log.add_argument("--notes")

    show = sub.add_parser("show", help="Mostrar la entrada de un día.")
    show.add_argument("date")

    delete = sub.add_parser("delete", help="Borrar la entrada de un día.")
    delete.add_argument("date")

    listing = sub.add_parser("list", help="Listar entradas.")
    _add_range_options(listing)

    stats = sub.add_parser("stats", help="Promedios de las entradas.")
    _add_range_options(stats)

    sub.add_parser("score", help="Puntaje de salud (0-100).")
    sub.add_parser("flags", help="Alertas de salud.")
    sub.add_parser("summary", help="Tablero: puntaje, promedios, alertas.")

    recommend = sub.add_parser("recommend", help="Recomendaciones para un día.")
    recommend.add_argument("--date", default=None, help="Default: última entrada.")

    trends = sub.add_parser("trends", help="Tendencias de los últimos días.")
    trends.add_argument("--days", type=int, default=7)

    sub.add_parser("tip", help="Tip de salud aleatorio.")

    goals = sub.add_parser("goals", help="Ver o actualizar objetivos.")
    goals.add_argument("--steps", type=int)
    goals.add_argument("--sleep", type=float)
    goals.add_argument("--water", type=int)
    goals.add_argument("--calories", type=int)
    goals.add_argument("--heart-rate-min", type=int)
    goals.add_argument("--heart-rate-max", type=int)

    settings = sub.add_parser("settings", help="Ver o actualizar preferencias.")
    settings.add_argument("--theme", choices=["light", "dark"])
    settings.add_argument("--notifications", choices=["on", "off"])
    settings.add_argument("--reminder-time", help="HH:MM")

    profile = sub.add_parser("profile", help="Ver o actualizar perfil.")
    profile.add_argument("--name")
    profile.add_argument("--age", type=int)
    profile.add_argument("--height", type=float, help="cm")
    profile.add_argument("--weight", type=float, help="kg")

    export_csv = sub.add_parser("export-csv", help="Exportar entradas a CSV.")
    export_csv.add_argument("--out", default=None)

    export_json = sub.add_parser("export-json", help="Exportar documento a JSON.")
    export_json.add_argument("--out", default=None)

    import_json = sub.add_parser("import-json", help="Reemplazar datos desde JSON.")
    import_json.add_argument("path")

    report = sub.add_parser("report", help="Reporte Excel (resumen + entradas).")
    report.add_argument("--out", default=None)
    report.add_argument("--days", type=int, default=7)

    remind = sub.add_parser("remind", help="Recordatorio diario según preferencias.")
    remind.add_argument(
        "--wait", action="store_true", help="Quedarse corriendo hasta Ctrl+C."
    )

    clear = sub.add_parser("clear", help="Borrar todos los datos.")
    clear.add_argument("--yes", action="store_true", help="Confirmar borrado.")
    return parser


def _add_range_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--days", type=int, help="Últimos N días.")
    group.add_argument("--week", action="store_true", help="Semana actual.")
    group.add_argument("--month", action="store_true", help="Mes actual.")
    parser.add_argument("--start", help="YYYY-MM-DD (con --end).")
    parser.add_argument("--end", help="YYYY-MM-DD (con --start).")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    return build_parser().parse_args(argv)


def open_store(config: TrackerConfig) -> RecordStore:
    """Open the SQLite-backed store and make sure the document exists.

    Raises:
        StorageUnavailableError: If the database cannot be opened.
    """
    backend = SQLiteBackend(config.db_path)
    store = RecordStore(backend, default_data_path=config.default_data_path)
    result = store.initialize()
    if not result:
        logging.getLogger(__name__).error("Initialization failed: %s", result.message)
    return store


def main(argv: Sequence[str] | None = None) -> int:
    """Run the health tracker CLI.

    Returns:
        Exit code (0 on success, 1 on a failed operation).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = load_config(ns.base_dir)
    try:
        store = open_store(config)
    except StorageUnavailableError as exc:
        print(f"Error: almacenamiento no disponible: {exc}")
        return 1
    handler = _COMMANDS[ns.command]
    try:
        return handler(store, config, ns)
    except ValueError as exc:
        # Fechas u horas mal escritas por el usuario.
        print(f"Error: {exc}")
        return 1


def _cmd_init(store: RecordStore, config: TrackerConfig, _: argparse.Namespace) -> int:
    print(f"OK: Data: {config.db_path}")
    print(f"OK: Entries: {len(store.get_entries())}")
    return 0


def _cmd_info(store: RecordStore, config: TrackerConfig, _: argparse.Namespace) -> int:
    print(f"Data file: {config.db_path}")
    print(f"Export dir: {config.export_dir}")
    print(f"Entries: {len(store.get_entries())}")
    print(f"Size: {store.get_storage_size()} bytes")
    return 0


def _cmd_log(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    entry = entry_from_args(ns)
    result = store.save_entry(entry)
    if not result:
        return _fail(result)
    print(f"OK: Entry saved for {entry['date']}")
    saved = store.get_entry_by_date(entry["date"])
    for message in goal_achievements(saved, store.get_goals()):
        print(f"Goal: {message}")
    for message in health_alerts(saved):
        print(f"Alert: {message}")
    return 0


def entry_from_args(ns: argparse.Namespace) -> Entry:
    """Entry dict with only the options given on the command line."""
    day = dates.format_day(ns.date) if ns.date else dates.today().isoformat()
    entry: Entry = {"date": day}
    for option, field_name in _ENTRY_OPTIONS:
        value = getattr(ns, option, None)
        if value is not None:
            entry[field_name] = value
    return entry


def _cmd_show(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    entry = store.get_entry_by_date(ns.date)
    if entry is None:
        print(f"No entry for {ns.date}")
        return 1
    print(json.dumps(entry, indent=2, ensure_ascii=False))
    return 0


def _cmd_delete(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    result = store.delete_entry(ns.date)
    if not result:
        return _fail(result)
    print(f"OK: {result.message or 'Entry deleted'}")
    return 0


def select_entries(store: RecordStore, ns: argparse.Namespace) -> list[Entry]:
    """Entries chosen by the range options (all entries by default)."""
    if getattr(ns, "start", None) or getattr(ns, "end", None):
        if not (ns.start and ns.end):
            raise ValueError("--start y --end van juntos")
        return store.get_entries_in_range(
            dates.parse_day(ns.start), dates.parse_day(ns.end)
        )
    if getattr(ns, "days", None) is not None:
        return store.get_last_n_days(ns.days)
    if getattr(ns, "week", False):
        return store.get_current_week_entries()
    if getattr(ns, "month", False):
        return store.get_current_month_entries()
    return store.get_entries()


def _cmd_list(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    print(entries_table(select_entries(store, ns)))
    return 0


def _cmd_stats(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    stats = calculate_stats(select_entries(store, ns))
    for name, value in asdict(stats).items():
        print(f"{name}: {round(value, 2)}")
    return 0


def _cmd_score(store: RecordStore, _: TrackerConfig, __: argparse.Namespace) -> int:
    print(calculate_health_score(store.get_entries(), store.get_goals()))
    return 0


def _cmd_flags(store: RecordStore, _: TrackerConfig, __: argparse.Namespace) -> int:
    flags = detect_health_flags(store.get_entries(), store.get_goals())
    if not flags:
        print("No health flags.")
    for flag in flags:
        print(f"[{flag.type}] {flag.metric}: {flag.message}")
    return 0


def _cmd_summary(store: RecordStore, _: TrackerConfig, __: argparse.Namespace) -> int:
    print(dashboard_text(store.get_entries(), store.get_goals()))
    return 0


def _cmd_recommend(
    store: RecordStore, _: TrackerConfig, ns: argparse.Namespace
) -> int:
    if ns.date:
        entry = store.get_entry_by_date(ns.date)
    else:
        entries = store.get_entries()
        entry = entries[0] if entries else None
    for rec in analyze_entry(entry, store.get_goals()):
        print(f"[{rec.priority}] {rec.category}: {rec.message}")
        for tip in rec.tips:
            print(f"    - {tip}")
    return 0


def _cmd_trends(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    report = analyze_trends(store.get_last_n_days(ns.days))
    for trend in report.trends:
        print(f"[{trend.direction}] {trend.category}: {trend.message} ({trend.value})")
    for insight in report.insights:
        print(f"- {insight}")
    return 0


def _cmd_tip(_: RecordStore, __: TrackerConfig, ___: argparse.Namespace) -> int:
    tip = daily_tip()
    print(f"[{tip.category}] {tip.tip}")
    return 0


def _cmd_goals(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    updates: dict[str, Any] = {
        name: getattr(ns, name)
        for name in ("steps", "sleep", "water", "calories")
        if getattr(ns, name) is not None
    }
    if (ns.heart_rate_min is None) != (ns.heart_rate_max is None):
        print("Error: --heart-rate-min y --heart-rate-max van juntos")
        return 1
    if ns.heart_rate_min is not None:
        updates["heartRate"] = {"min": ns.heart_rate_min, "max": ns.heart_rate_max}
    return _update_and_print(store.update_goals, store.get_goals, updates)


def _cmd_settings(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    updates: dict[str, Any] = {}
    if ns.theme:
        updates["theme"] = ns.theme
    if ns.notifications:
        updates["notifications"] = ns.notifications == "on"
    if ns.reminder_time:
        try:
            reminder = datetime.strptime(ns.reminder_time, "%H:%M")
        except ValueError:
            print(f"Error: hora invalida: {ns.reminder_time}")
            return 1
        updates["reminderTime"] = reminder.strftime("%H:%M")
    return _update_and_print(store.update_settings, store.get_settings, updates)


def _cmd_profile(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    updates = {
        name: getattr(ns, name)
        for name in ("name", "age", "height", "weight")
        if getattr(ns, name) is not None
    }
    return _update_and_print(store.update_user_profile, store.get_user_profile, updates)


def _update_and_print(update: Any, read: Any, updates: dict[str, Any]) -> int:
    if updates:
        result = update(updates)
        if not result:
            return _fail(result)
    print(json.dumps(read(), indent=2, ensure_ascii=False))
    return 0


def _cmd_export_csv(
    store: RecordStore, config: TrackerConfig, ns: argparse.Namespace
) -> int:
    out_path = _out_path(ns.out, config, "health-data", "csv")
    if not write_csv(store.get_entries(), out_path):
        print("No hay datos para exportar.")
        return 1
    print(f"OK: Output: {out_path}")
    return 0


def _cmd_export_json(
    store: RecordStore, config: TrackerConfig, ns: argparse.Namespace
) -> int:
    out_path = _out_path(ns.out, config, "health-data", "json")
    write_json(store.get_all(), out_path)
    print(f"OK: Output: {out_path}")
    return 0


def _cmd_import_json(
    store: RecordStore, _: TrackerConfig, ns: argparse.Namespace
) -> int:
    try:
        text = Path(ns.path).expanduser().read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Error: no se pudo leer {ns.path}: {exc}")
        return 1
    result = store.import_json(text)
    if not result:
        return _fail(result)
    print(f"OK: {result.message}")
    return 0


def _cmd_report(store: RecordStore, config: TrackerConfig, ns: argparse.Namespace) -> int:
    document = store.get_all() or {}
    entries = store.get_last_n_days(ns.days) if ns.days else store.get_entries()
    out_path = _out_path(ns.out, config, "health-report", "xlsx")
    write_report_xlsx(document, entries, out_path, ReportLayout())
    print(f"OK: Entries: {len(entries)}")
    print(f"OK: Output: {out_path}")
    return 0


def _cmd_remind(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    reminders = ReminderScheduler()
    next_at = reminders.apply_settings(store.get_settings())
    if next_at is None:
        print("Reminders are off (enable notifications and set a reminder time).")
        reminders.shutdown()
        return 0
    print(f"OK: Next reminder: {next_at.strftime('%Y-%m-%d %H:%M')}")
    if ns.wait:
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass
    reminders.shutdown()
    return 0


def _cmd_clear(store: RecordStore, _: TrackerConfig, ns: argparse.Namespace) -> int:
    if not ns.yes:
        print("Use --yes para confirmar el borrado de todos los datos.")
        return 1
    result = store.clear_all()
    if not result:
        return _fail(result)
    print(f"OK: {result.message}")
    return 0


def _out_path(raw: str | None, config: TrackerConfig, stem: str, ext: str) -> Path:
    if raw:
        return Path(raw).expanduser()
    ts = datetime.now(tz=_LOCAL_TZ).strftime("%Y-%m-%d_%H-%M-%S")
    return config.export_dir / f"{stem}_{ts}.{ext}"


def _fail(result: StoreResult) -> int:
    print(f"Error: {result.message}")
    return 1


_COMMANDS = {
    "init": _cmd_init,
    "info": _cmd_info,
    "log": _cmd_log,
    "show": _cmd_show,
    "delete": _cmd_delete,
    "list": _cmd_list,
    "stats": _cmd_stats,
    "score": _cmd_score,
    "flags": _cmd_flags,
    "summary": _cmd_summary,
    "recommend": _cmd_recommend,
    "trends": _cmd_trends,
    "tip": _cmd_tip,
    "goals": _cmd_goals,
    "settings": _cmd_settings,
    "profile": _cmd_profile,
    "export-csv": _cmd_export_csv,
    "export-json": _cmd_export_json,
    "import-json": _cmd_import_json,
    "report": _cmd_report,
    "remind": _cmd_remind,
    "clear": _cmd_clear,
}
