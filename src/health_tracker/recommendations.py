"""Recomendaciones por reglas: consejos del dia, tendencias y tip diario."""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from health_tracker.model import (
    DailyTip,
    Entry,
    Recommendation,
    Trend,
    TrendReport,
)
from health_tracker.statistics import calculate_stats, metric_value

DEFAULT_STEP_GOAL = 10000
DEFAULT_WATER_GOAL = 8

PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class _Rule:
    """Condition on one metric value -> advice. ``{gap}`` is goal - value."""

    applies: Callable[[float, Mapping[str, Any]], bool]
    type: str
    message: str
    priority: str
    tips: tuple[str, ...] = ()


def _step_goal(goals: Mapping[str, Any]) -> float:
    return metric_value(goals.get("steps")) or DEFAULT_STEP_GOAL


def _water_goal(goals: Mapping[str, Any]) -> float:
    return metric_value(goals.get("water")) or DEFAULT_WATER_GOAL


_GOAL_FOR: dict[str, Callable[[Mapping[str, Any]], float]] = {
    "steps": _step_goal,
    "water": _water_goal,
}

# (entry field, category, rules); first matching rule of each table wins.
METRIC_RULES: tuple[tuple[str, str, tuple[_Rule, ...]], ...] = (
    (
        "sleep",
        "sleep",
        (
            _Rule(
                lambda v, g: v < 6,
                "warning",
                "You're getting insufficient sleep. Aim for 7-9 hours per night.",
                "high",
                (
                    "Maintain a consistent sleep schedule",
                    "Avoid screens 1 hour before bed",
                    "Create a relaxing bedtime routine",
                    "Keep your bedroom cool and dark",
                ),
            ),
            _Rule(
                lambda v, g: v < 7,
                "info",
                "Your sleep is below optimal. Consider getting more rest.",
                "medium",
                (
                    "Try to add 30-60 minutes more sleep",
                    "Maintain consistent sleep/wake times",
                ),
            ),
            _Rule(
                lambda v, g: v >= 8,
                "success",
                "Excellent sleep! Keep up the good work!",
                "low",
            ),
        ),
    ),
    (
        "steps",
        "activity",
        (
            _Rule(
                lambda v, g: v < 2000,
                "warning",
                "Very low activity detected. Try to move more throughout the day.",
                "high",
                (
                    "Take short walking breaks every hour",
                    "Use stairs instead of elevators",
                    "Park farther away from destinations",
                    "Try a 10-minute morning walk",
                ),
            ),
            _Rule(
                lambda v, g: v < _step_goal(g),
                "info",
                "You're {gap} steps away from your goal!",
                "medium",
                (
                    "Take a quick walk before bed",
                    "Walk while on phone calls",
                    "Do household chores",
                ),
            ),
            _Rule(
                lambda v, g: True,
                "success",
                "Great job meeting your step goal!",
                "low",
            ),
        ),
    ),
    (
        "water",
        "hydration",
        (
            _Rule(
                lambda v, g: v < 3,
                "warning",
                "Low water intake. Dehydration can affect your energy and focus.",
                "high",
                (
                    "Keep a water bottle with you",
                    "Set hourly reminders to drink water",
                    "Drink a glass of water before each meal",
                    "Try infusing water with fruits for flavor",
                ),
            ),
            _Rule(
                lambda v, g: v < _water_goal(g),
                "info",
                "Drink {gap} more glasses to reach your goal.",
                "medium",
                ("Have a glass of water now", "Drink water before bed"),
            ),
            _Rule(
                lambda v, g: True,
                "success",
                "Well hydrated! Keep it up!",
                "low",
            ),
        ),
    ),
    (
        "heartRate",
        "heart",
        (
            _Rule(
                lambda v, g: v > 100,
                "danger",
                "Elevated resting heart rate detected.",
                "high",
                (
                    "Consider stress reduction techniques",
                    "Practice deep breathing exercises",
                    "Ensure adequate rest and recovery",
                    "Consult a doctor if this persists",
                ),
            ),
            _Rule(
                lambda v, g: 0 < v < 60,
                "info",
                "Low resting heart rate. This can be normal for athletes.",
                "medium",
                (
                    "Monitor for any unusual symptoms",
                    "Consult a doctor if you feel dizzy or fatigued",
                ),
            ),
            _Rule(
                lambda v, g: 60 <= v <= 80,
                "success",
                "Heart rate is in healthy range!",
                "low",
            ),
        ),
    ),
)

# mood values -> wellness advice
MOOD_RULES: tuple[tuple[frozenset[str], Recommendation], ...] = (
    (
        frozenset({"tired", "exhausted"}),
        Recommendation(
            type="info",
            category="wellness",
            message="Feeling tired? Your body might need rest or exercise.",
            priority="medium",
            tips=(
                "Get 15 minutes of fresh air and sunlight",
                "Take a power nap (20-30 minutes)",
                "Check your caffeine intake",
                "Ensure you're getting quality sleep",
            ),
        ),
    ),
    (
        frozenset({"stressed", "anxious"}),
        Recommendation(
            type="info",
            category="wellness",
            message="High stress detected. Consider relaxation techniques.",
            priority="high",
            tips=(
                "Practice 5 minutes of deep breathing",
                "Try meditation or mindfulness",
                "Take a short walk outdoors",
                "Talk to someone you trust",
                "Reduce caffeine intake",
            ),
        ),
    ),
)

NO_ENTRY_RECOMMENDATION = Recommendation(
    type="info",
    category="general",
    message="Start logging your health data to get personalized recommendations!",
    priority="low",
)

DAILY_TIPS: tuple[DailyTip, ...] = (
    DailyTip(
        "hydration",
        "Start your day with a glass of water to kickstart your metabolism.",
    ),
    DailyTip(
        "activity",
        "Take the stairs whenever possible - it's a simple way to stay active.",
    ),
    DailyTip(
        "sleep",
        "Keep your bedroom temperature between 60-67°F for optimal sleep.",
    ),
    DailyTip(
        "nutrition",
        "Eat a rainbow of colorful fruits and vegetables for maximum nutrients.",
    ),
    DailyTip(
        "wellness",
        "Practice gratitude - write down three things you're grateful for today.",
    ),
    DailyTip(
        "activity",
        "Set a timer to stand and stretch every hour if you sit a lot.",
    ),
    DailyTip(
        "sleep",
        "Expose yourself to bright light in the morning to regulate your sleep cycle.",
    ),
    DailyTip(
        "hydration",
        "If plain water is boring, try adding lemon, cucumber, or mint.",
    ),
    DailyTip(
        "wellness",
        "Take 5 deep breaths when you feel stressed - it really helps!",
    ),
    DailyTip(
        "activity",
        "Walk while taking phone calls - you'll barely notice the extra steps.",
    ),
)


def analyze_entry(
    entry: Mapping[str, Any] | None, goals: Mapping[str, Any] | None = None
) -> list[Recommendation]:
    """Recommendations for one entry, highest priority first.

    Metrics missing from the entry produce no recommendation.
    """
    if not entry:
        return [NO_ENTRY_RECOMMENDATION]
    goals = goals or {}
    out: list[Recommendation] = []
    for field_name, category, rules in METRIC_RULES:
        value = metric_value(entry.get(field_name))
        if value is None:
            continue
        for rule in rules:
            if rule.applies(value, goals):
                out.append(_build(rule, category, field_name, value, goals))
                break

    mood = str(entry.get("mood") or "").strip().lower()
    for moods, advice in MOOD_RULES:
        if mood in moods:
            out.append(advice)
            break

    out.sort(key=lambda r: PRIORITY_ORDER.get(r.priority, len(PRIORITY_ORDER)))
    return out


def analyze_trends(entries: Sequence[Entry]) -> TrendReport:
    """Trends over several entries (newest first)."""
    if len(entries) < 3:
        return TrendReport(insights=["Log more data to see trend analysis"])

    stats = calculate_stats(entries)
    trends: list[Trend] = []
    insights: list[str] = []

    if stats.avg_sleep < 6.5:
        trends.append(
            Trend(
                "sleep",
                "concern",
                "Your average sleep is below recommended levels",
                f"{stats.avg_sleep:.1f}",
            )
        )
        insights.append(
            "Consistent lack of sleep can affect your health, mood, and productivity."
        )
    elif stats.avg_sleep >= 7.5:
        trends.append(
            Trend("sleep", "positive", "Great sleep pattern!", f"{stats.avg_sleep:.1f}")
        )

    if stats.avg_steps < 5000:
        trends.append(
            Trend(
                "activity",
                "concern",
                "Your activity level is quite low",
                f"{stats.avg_steps:.0f}",
            )
        )
        insights.append(
            "Try to gradually increase your daily steps by 500-1000 each week."
        )
    elif stats.avg_steps >= 8000:
        trends.append(
            Trend(
                "activity",
                "positive",
                "Excellent activity level!",
                f"{stats.avg_steps:.0f}",
            )
        )

    if stats.avg_water < 5:
        trends.append(
            Trend(
                "hydration",
                "concern",
                "Consistently low water intake",
                f"{stats.avg_water:.1f}",
            )
        )
        insights.append("Set reminders to drink water throughout the day.")

    if len(entries) >= 5:
        recent = calculate_stats(entries[:3]).avg_steps
        older = calculate_stats(entries[-3:]).avg_steps
        if recent > older * 1.2:
            insights.append("Your activity is trending upward - great progress!")
        elif recent < older * 0.8:
            insights.append(
                "Your activity has decreased recently. Try to get back on track."
            )

    return TrendReport(trends=trends, insights=insights)


def daily_tip(rng: random.Random | None = None) -> DailyTip:
    """Random tip from the tips table."""
    return (rng or random).choice(DAILY_TIPS)


def _build(
    rule: _Rule,
    category: str,
    field_name: str,
    value: float,
    goals: Mapping[str, Any],
) -> Recommendation:
    message = rule.message
    if "{gap}" in message:
        goal = _GOAL_FOR[field_name](goals)
        message = message.format(gap=_format_number(goal - value))
    return Recommendation(
        type=rule.type,
        category=category,
        message=message,
        priority=rule.priority,
        tips=rule.tips,
    )


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return format(value, "f").rstrip("0").rstrip(".")
