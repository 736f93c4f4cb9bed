"""Exportacion de datos: CSV, JSON y reporte Excel formateado."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from health_tracker.model import Entry
from health_tracker.statistics import (
    calculate_health_score,
    calculate_stats,
    detect_health_flags,
)

logger = logging.getLogger(__name__)

CSV_HEADERS: tuple[str, ...] = (
    "Date",
    "Steps",
    "Heart Rate (bpm)",
    "Sleep (hours)",
    "Water (glasses)",
    "Calories",
    "Mood",
    "Notes",
)
_CSV_NUMERIC = ("steps", "heartRate", "sleep", "water", "calories")
_CSV_TEXT = ("mood", "notes")

_WEEKDAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_ENTRY_COLUMNS: tuple[str, ...] = (
    "weekday",
    "date",
    "steps",
    "heartRate",
    "sleep",
    "water",
    "calories",
    "mood",
    "notes",
)

_HEADER_MAP: dict[str, str] = {
    "weekday": "Day",
    "date": "Date",
    "steps": "Steps",
    "heartRate": "Heart rate\n(bpm)",
    "sleep": "Sleep\n(hours)",
    "water": "Water\n(glasses)",
    "calories": "Calories",
    "mood": "Mood",
    "notes": "Notes",
}


@dataclass(frozen=True)
class ReportLayout:
    """Layout/formatting configuration for the Excel report."""

    summary_sheet: str = "Summary"
    entries_sheet: str = "Entries"
    max_entries: int = 20


def export_csv(entries: Sequence[Entry]) -> str | None:
    """CSV text with a fixed column set, every data field quoted.

    Missing numbers are written as 0 and missing text as an empty string.
    Returns None when there is nothing to export.
    """
    if not entries:
        logger.warning("No entries to export")
        return None
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for entry in entries:
        writer.writerow(
            [str(entry.get("date") or "")]
            + [_csv_number(entry.get(name)) for name in _CSV_NUMERIC]
            + [str(entry.get(name) or "") for name in _CSV_TEXT]
        )
    return buf.getvalue().rstrip("\n")


def write_csv(entries: Sequence[Entry], out_path: Path) -> bool:
    """Write ``export_csv`` output to a file; False when there are no entries."""
    content = export_csv(entries)
    if content is None:
        return False
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(content, encoding="utf-8")
    return True


def write_json(document: Mapping[str, Any] | None, out_path: Path) -> None:
    """Write the document as pretty-printed JSON."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def write_report_xlsx(
    document: Mapping[str, Any],
    entries: Sequence[Entry],
    out_path: Path,
    layout: ReportLayout,
) -> None:
    """Write a two-sheet health report.

    Args:
        document: Health document (profile and goals are read from it).
        entries: Entries to summarize, newest first.
        out_path: Output path for the XLSX file.
        layout: Report layout parameters.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary_df = summary_frame(document, entries)
    entries_df = entries_frame(entries[: layout.max_entries])

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        summary_df.to_excel(writer, index=False, sheet_name=layout.summary_sheet)
        entries_df.to_excel(writer, index=False, sheet_name=layout.entries_sheet)
        _format_summary_sheet(writer.book[layout.summary_sheet])
        _format_sheet(writer.book[layout.entries_sheet])


def summary_frame(
    document: Mapping[str, Any], entries: Sequence[Entry]
) -> pd.DataFrame:
    """Two-column (Item, Value) summary: profile, score, averages, alerts."""
    user = document.get("user") or {}
    goals = document.get("goals") or {}
    stats = calculate_stats(entries)
    rows: list[tuple[str, object]] = [
        ("Name", user.get("name") or "N/A"),
        ("Age", user.get("age") or "N/A"),
        ("Height (cm)", user.get("height") or "N/A"),
        ("Weight (kg)", user.get("weight") or "N/A"),
        ("Health score", f"{calculate_health_score(entries, goals)}/100"),
        ("Entries", stats.total_entries),
        ("Average steps", round(stats.avg_steps)),
        ("Average heart rate (bpm)", round(stats.avg_heart_rate)),
        ("Average sleep (hours)", round(stats.avg_sleep, 1)),
        ("Average water (glasses)", round(stats.avg_water, 1)),
        ("Average calories", round(stats.avg_calories)),
    ]
    for flag in detect_health_flags(entries, goals):
        rows.append((f"Alert ({flag.type})", flag.message))
    return pd.DataFrame(rows, columns=["Item", "Value"])


def entries_frame(entries: Sequence[Entry]) -> pd.DataFrame:
    """Entries as a DataFrame with a weekday column and display headers."""
    df = pd.DataFrame(list(entries)).reindex(columns=list(_ENTRY_COLUMNS[1:]))
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df = _add_weekday_column(df)
    return df.rename(columns=_HEADER_MAP)


def _csv_number(value: object) -> str:
    if not value or isinstance(value, bool):
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _weekday_label(weekday: object) -> str:
    """Etiqueta Mon..Sun para ``Series.dt.weekday``; vacio para NaN."""
    if not isinstance(weekday, int | float) or pd.isna(weekday):
        return ""
    idx = int(weekday)
    return _WEEKDAYS[idx] if 0 <= idx < len(_WEEKDAYS) else ""


def _add_weekday_column(df: pd.DataFrame) -> pd.DataFrame:
    """Añade columna weekday (Day) al frente a partir de date."""
    df = df.copy()
    if df.empty:
        df.insert(0, "weekday", pd.Series(dtype=object))
        return df
    weekday_series = pd.to_datetime(df["date"], errors="coerce").dt.weekday
    df.insert(0, "weekday", weekday_series.map(_weekday_label))
    return df


_THIN = Side(style="thin")
_CELL_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_CELL_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)
_BODY_ROW_HEIGHT = 15


def _box(cells: Iterable[Any], *, bold: bool = False) -> None:
    for cell in cells:
        cell.alignment = _CELL_ALIGN
        cell.border = _CELL_BORDER
        if bold:
            cell.font = Font(bold=True)


def _style_header_row(ws: Any) -> None:
    _box(ws[1], bold=True)


def _style_body_rows(ws: Any) -> None:
    """Celdas de datos centradas, con borde y altura de fila fija."""
    for row in ws.iter_rows(min_row=2):
        _box(row)
        ws.row_dimensions[row[0].row].height = _BODY_ROW_HEIGHT


def _header_columns(ws: Any) -> dict[str, int]:
    """Header text -> 1-based column number."""
    return {str(cell.value): cell.column for cell in ws[1]}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    """Establece anchos de columna para evitar ###."""
    widths = [
        ("Day", 6),
        ("Date", 12),
        ("Steps", 10),
        ("Heart rate\n(bpm)", 10),
        ("Sleep\n(hours)", 9),
        ("Water\n(glasses)", 9),
        ("Calories", 10),
        ("Mood", 12),
        ("Notes", 30),
    ]
    for header, width in widths:
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formatos numéricos por cabecera."""
    fmt_map: dict[str, str] = {
        "Date": "yyyy-mm-dd",
        "Steps": "#,##0",
        "Heart rate\n(bpm)": "0",
        "Sleep\n(hours)": "0.0",
        "Water\n(glasses)": "0",
        "Calories": "#,##0",
    }
    for row in ws.iter_rows(min_row=2):
        for header, fmt in fmt_map.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to the entries worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _header_columns(ws)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)


def _format_summary_sheet(ws: Any) -> None:
    _style_header_row(ws)
    for row in ws.iter_rows(min_row=2):
        row[0].font = Font(bold=True)
    ws.column_dimensions["A"].width = 26
    ws.column_dimensions["B"].width = 48
