"""Estadisticas derivadas: promedios, puntaje de salud y alertas."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from health_tracker.model import NUMERIC_FIELDS, Entry, HealthFlag, HealthStats

# (metric, max points) for goal-ratio components, in scoring order.
_SCORE_WEIGHTS: tuple[tuple[str, float], ...] = (
    ("steps", 25),
    ("sleep", 25),
    ("water", 20),
    ("heartRate", 15),
    ("calories", 15),
)
_HEART_RATE_POINTS = 15.0
_HEART_RATE_POINTS_PER_BPM = 1 / 5

LOW_SLEEP_HOURS = 6
HIGH_HEART_RATE_BPM = 100
LOW_WATER_GLASSES = 3
LOW_ACTIVITY_STEPS = 2000
CHRONIC_SLEEP_DAYS = 3


def calculate_stats(entries: Sequence[Entry]) -> HealthStats:
    """Mean of each metric over all entries; missing values count as 0."""
    if not entries:
        return HealthStats()
    means = _metrics_frame(entries).mean()
    return HealthStats(
        avg_steps=float(means["steps"]),
        avg_heart_rate=float(means["heartRate"]),
        avg_sleep=float(means["sleep"]),
        avg_water=float(means["water"]),
        avg_calories=float(means["calories"]),
        total_entries=len(entries),
    )


def calculate_health_score(entries: Sequence[Entry], goals: Mapping[str, Any]) -> int:
    """Weighted 0-100 score of the most recent entry against the goals.

    Each metric contributes only when both the entry value and its goal are
    present. Missing metrics add nothing and the maximum is not rescaled, so
    an entry with only steps tops out at 25.

    Args:
        entries: Entries newest first (``entries[0]`` is scored).
        goals: Numeric targets; ``heartRate`` is a ``{"min", "max"}`` range.

    Returns:
        Integer score in [0, 100].
    """
    if not entries:
        return 0
    latest = entries[0]
    total = 0.0
    for metric, max_points in _SCORE_WEIGHTS:
        value = metric_value(latest.get(metric))
        if value is None:
            continue
        if metric == "heartRate":
            points = _heart_rate_points(value, goals.get("heartRate"))
        else:
            points = _ratio_points(value, metric_value(goals.get(metric)), max_points)
        if points is not None:
            total += points
    return min(100, max(0, int(round(total))))


def detect_health_flags(
    entries: Sequence[Entry], goals: Mapping[str, Any] | None = None
) -> list[HealthFlag]:
    """Threshold alerts on the latest entry plus a 3-day sleep look-back.

    ``goals`` is accepted for call-site symmetry with the score; thresholds
    are fixed.
    """
    flags: list[HealthFlag] = []
    if not entries:
        return flags
    latest = entries[0]

    sleep = metric_value(latest.get("sleep"))
    if sleep is not None and sleep < LOW_SLEEP_HOURS:
        flags.append(
            HealthFlag("danger", "Insufficient sleep detected (<6 hours)", "sleep")
        )
    heart_rate = metric_value(latest.get("heartRate"))
    if heart_rate is not None and heart_rate > HIGH_HEART_RATE_BPM:
        flags.append(
            HealthFlag(
                "warning", "Elevated resting heart rate (>100 bpm)", "heartRate"
            )
        )
    water = metric_value(latest.get("water"))
    if water is not None and water < LOW_WATER_GLASSES:
        flags.append(HealthFlag("warning", "Low water intake (<3 glasses)", "water"))
    steps = metric_value(latest.get("steps"))
    if steps is not None and steps < LOW_ACTIVITY_STEPS:
        flags.append(
            HealthFlag("warning", "Very low activity level (<2000 steps)", "steps")
        )

    if len(entries) >= CHRONIC_SLEEP_DAYS:
        recent = entries[:CHRONIC_SLEEP_DAYS]
        if all((metric_value(e.get("sleep")) or 0) < LOW_SLEEP_HOURS for e in recent):
            flags.append(
                HealthFlag(
                    "danger", "Chronic sleep deprivation detected (3+ days)", "sleep"
                )
            )
    return flags


def _metrics_frame(entries: Sequence[Entry]) -> pd.DataFrame:
    df = pd.DataFrame(list(entries)).reindex(columns=list(NUMERIC_FIELDS))
    for col in NUMERIC_FIELDS:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df.fillna(0)


def _ratio_points(value: float, goal: float | None, max_points: float) -> float | None:
    if not goal:
        return None
    return max(0.0, min(value / goal * max_points, max_points))


def _heart_rate_points(value: float, goal: object) -> float | None:
    if not isinstance(goal, Mapping):
        return None
    low = metric_value(goal.get("min"))
    high = metric_value(goal.get("max"))
    if low is None or high is None:
        return None
    if low <= value <= high:
        return _HEART_RATE_POINTS
    deviation = abs(value - (low + high) / 2)
    return max(_HEART_RATE_POINTS - deviation * _HEART_RATE_POINTS_PER_BPM, 0.0)


def metric_value(value: object) -> float | None:
    """Numeric value of a field; None for missing, bool or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number
