"""Vistas de texto del tablero: tabla de entradas y resumen de salud."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from health_tracker.model import Entry
from health_tracker.recommendations import analyze_entry
from health_tracker.statistics import (
    calculate_health_score,
    calculate_stats,
    detect_health_flags,
)

TABLE_COLUMNS: tuple[str, ...] = (
    "date",
    "steps",
    "heartRate",
    "sleep",
    "water",
    "calories",
    "mood",
    "notes",
)


def entries_table(entries: Sequence[Entry], limit: int = 120) -> str:
    """Aligned plain-text table of entries (newest first)."""
    if not entries:
        return "(sin entradas)"
    df = pd.DataFrame(list(entries[:limit])).reindex(columns=list(TABLE_COLUMNS))
    return display_frame(df).to_string(index=False, max_colwidth=28)


def dashboard_text(entries: Sequence[Entry], goals: Mapping[str, Any]) -> str:
    """Score, averages, flags and recommendations as printable lines."""
    stats = calculate_stats(entries)
    lines = [
        f"Health score: {calculate_health_score(entries, goals)}/100",
        f"Entries: {stats.total_entries}",
        f"Average steps: {stats.avg_steps:.0f}",
        f"Average heart rate: {stats.avg_heart_rate:.0f} bpm",
        f"Average sleep: {stats.avg_sleep:.1f} hours",
        f"Average water: {stats.avg_water:.1f} glasses",
        f"Average calories: {stats.avg_calories:.0f}",
    ]
    flags = detect_health_flags(entries, goals)
    if flags:
        lines.append("")
        lines.append("Alerts:")
        lines.extend(f"  [{f.type}] {f.message}" for f in flags)
    lines.append("")
    lines.append("Recommendations:")
    for rec in analyze_entry(entries[0] if entries else None, goals):
        lines.append(f"  [{rec.priority}] {rec.message}")
        lines.extend(f"    - {tip}" for tip in rec.tips)
    return "\n".join(lines)


def display_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Prepare a string-renderable DataFrame for aligned preview."""
    if df.empty:
        return df.copy()
    out = df.copy()
    for col in out.columns:
        out[col] = out[col].map(format_value)
    return out


def format_value(value: object) -> str:
    """Format values without NaN/scientific notation."""
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        text = format(value, "f").rstrip("0").rstrip(".")
        return text if text else "0"
    return str(value)
