from __future__ import annotations

from typing import Any

import pytest

from health_tracker.model import HealthFlag, HealthStats
from health_tracker.statistics import (
    calculate_health_score,
    calculate_stats,
    detect_health_flags,
    metric_value,
)

GOALS: dict[str, Any] = {
    "steps": 10000,
    "sleep": 8,
    "water": 8,
    "heartRate": {"min": 60, "max": 80},
    "calories": 2200,
}


def test_calculate_stats_empty() -> None:
    assert calculate_stats([]) == HealthStats()
    assert calculate_stats([]).total_entries == 0


def test_calculate_stats_treats_missing_as_zero() -> None:
    entries = [
        {"date": "2024-01-02", "steps": 4000, "sleep": 8, "heartRate": 70},
        {"date": "2024-01-01", "steps": 6000, "water": 6, "calories": 2000},
    ]
    stats = calculate_stats(entries)
    assert stats.avg_steps == 5000
    assert stats.avg_sleep == 4
    assert stats.avg_water == 3
    assert stats.avg_heart_rate == 35
    assert stats.avg_calories == 1000
    assert stats.total_entries == 2


def test_score_full_attainment_is_100() -> None:
    entries = [
        {
            "date": "2024-01-03",
            "steps": 12000,
            "sleep": 8,
            "water": 8,
            "heartRate": 70,
            "calories": 2200,
        }
    ]
    assert calculate_health_score(entries, GOALS) == 100


def test_score_with_missing_fields_is_not_rescaled() -> None:
    entries = [{"date": "2024-01-04", "steps": 5000}]
    assert calculate_health_score(entries, {"steps": 10000, "sleep": 8}) == 12


def test_score_only_steps_maxes_at_25() -> None:
    entries = [{"date": "2024-01-04", "steps": 50000}]
    assert calculate_health_score(entries, GOALS) == 25


def test_score_with_empty_goals_is_zero() -> None:
    entries = [{"date": "2024-01-04", "steps": 5000, "sleep": 8, "heartRate": 70}]
    assert calculate_health_score(entries, {}) == 0


def test_score_without_entries_is_zero() -> None:
    assert calculate_health_score([], GOALS) == 0


def test_score_uses_only_latest_entry() -> None:
    entries = [
        {"date": "2024-01-05", "sleep": 4},
        {"date": "2024-01-04", "steps": 10000, "sleep": 8},
    ]
    assert calculate_health_score(entries, GOALS) == round(4 / 8 * 25)


def test_heart_rate_outside_range_loses_points_by_deviation() -> None:
    # midpoint 70, deviation 30 -> 15 - 6 = 9
    assert calculate_health_score([{"date": "2024-01-01", "heartRate": 100}], GOALS) == 9
    # deviation 100 -> floored at 0
    assert calculate_health_score([{"date": "2024-01-01", "heartRate": 170}], GOALS) == 0


def test_heart_rate_goal_must_be_a_range() -> None:
    entries = [{"date": "2024-01-01", "heartRate": 70}]
    assert calculate_health_score(entries, {"heartRate": 70}) == 0
    assert calculate_health_score(entries, {"heartRate": {"min": 60}}) == 0


def test_score_ignores_non_numeric_values() -> None:
    entries = [{"date": "2024-01-01", "steps": None, "sleep": "ocho", "water": True}]
    assert calculate_health_score(entries, GOALS) == 0


def test_score_is_clamped_for_negative_values() -> None:
    entries = [{"date": "2024-01-01", "steps": -5000, "sleep": 8}]
    assert calculate_health_score(entries, GOALS) == 25


@pytest.mark.parametrize("metric", ["steps", "sleep", "water", "calories"])
def test_score_monotonic_per_metric(metric: str) -> None:
    base = {
        "date": "2024-01-01",
        "steps": 3000,
        "sleep": 5,
        "water": 2,
        "heartRate": 95,
        "calories": 900,
    }
    previous = -1
    for factor in [0, 0.25, 0.5, 1, 1.5, 2, 4]:
        entry = {**base, metric: GOALS[metric] * factor}
        score = calculate_health_score([entry], GOALS)
        assert 0 <= score <= 100
        assert score >= previous
        previous = score


def test_score_monotonic_toward_heart_rate_midpoint() -> None:
    previous = -1
    for hr in [200, 150, 120, 100, 90, 81, 80, 75, 70]:
        score = calculate_health_score([{"date": "2024-01-01", "heartRate": hr}], GOALS)
        assert score >= previous
        previous = score
    assert previous == 15


def test_flags_single_day_thresholds_in_order() -> None:
    entries = [
        {"date": "2024-01-01", "sleep": 5, "heartRate": 120, "water": 1, "steps": 500}
    ]
    flags = detect_health_flags(entries, GOALS)
    assert [f.metric for f in flags] == ["sleep", "heartRate", "water", "steps"]
    assert [f.type for f in flags] == ["danger", "warning", "warning", "warning"]


def test_flags_none_for_healthy_entry() -> None:
    entries = [
        {"date": "2024-01-01", "sleep": 8, "heartRate": 65, "water": 8, "steps": 9000}
    ]
    assert detect_health_flags(entries, GOALS) == []
    assert detect_health_flags([], GOALS) == []


def test_flags_chronic_sleep_deprivation() -> None:
    entries = [
        {"date": "2024-01-04", "sleep": 5, "heartRate": 60, "water": 4, "steps": 5000},
        {"date": "2024-01-03", "sleep": 5.5},
        {"date": "2024-01-02", "sleep": 4},
        {"date": "2024-01-01", "sleep": 3},
    ]
    flags = detect_health_flags(entries, GOALS)
    assert flags == [
        HealthFlag("danger", "Insufficient sleep detected (<6 hours)", "sleep"),
        HealthFlag("danger", "Chronic sleep deprivation detected (3+ days)", "sleep"),
    ]


def test_flags_chronic_needs_three_short_nights() -> None:
    entries = [
        {"date": "2024-01-03", "sleep": 5},
        {"date": "2024-01-02", "sleep": 7},
        {"date": "2024-01-01", "sleep": 4},
    ]
    assert [f.message for f in detect_health_flags(entries)] == [
        "Insufficient sleep detected (<6 hours)"
    ]


def test_flags_chronic_counts_missing_sleep_as_zero() -> None:
    entries = [
        {"date": "2024-01-03", "steps": 8000},
        {"date": "2024-01-02"},
        {"date": "2024-01-01", "sleep": 5},
    ]
    flags = detect_health_flags(entries)
    assert [f.message for f in flags] == [
        "Chronic sleep deprivation detected (3+ days)"
    ]


def test_functions_are_deterministic() -> None:
    entries = [{"date": "2024-01-01", "steps": 3333, "sleep": 5.5, "water": 2}]
    assert calculate_health_score(entries, GOALS) == calculate_health_score(
        entries, GOALS
    )
    assert detect_health_flags(entries, GOALS) == detect_health_flags(entries, GOALS)


def test_metric_value() -> None:
    assert metric_value(5) == 5.0
    assert metric_value("7.5") == 7.5
    assert metric_value(None) is None
    assert metric_value(False) is None
    assert metric_value(float("nan")) is None
    assert metric_value({"min": 1}) is None
