"""Recordatorio diario y mensajes de objetivos/alertas."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler

from health_tracker.statistics import metric_value

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "daily-reminder"
REMINDER_TITLE = "Health Tracker Reminder"
REMINDER_BODY = "Time to log your health data for today!"
DEFAULT_REMINDER_TIME = "09:00"

_TIME_RX = re.compile(r"^(\d{1,2}):(\d{2})$")

Notifier = Callable[[str, str], None]

# (entry field, goal label) in notification order
_GOAL_LABELS: tuple[tuple[str, str], ...] = (
    ("steps", "daily steps"),
    ("water", "water intake"),
    ("sleep", "sleep"),
)


def parse_reminder_time(value: str) -> tuple[int, int]:
    """Parse ``HH:MM`` into (hour, minute).

    Raises:
        ValueError: If the value is not a valid 24h time.
    """
    match = _TIME_RX.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Hora invalida (HH:MM): {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Hora invalida (HH:MM): {value!r}")
    return hour, minute


def next_reminder_at(time_value: str, now: datetime) -> datetime:
    """Next moment matching ``HH:MM``: today, or tomorrow if already past."""
    hour, minute = parse_reminder_time(time_value)
    scheduled = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if scheduled <= now:
        scheduled += timedelta(days=1)
    return scheduled


def log_notifier(title: str, body: str) -> None:
    """Default notifier: reminders go to the log."""
    logger.warning("%s: %s", title, body)


def goal_achievements(
    entry: Mapping[str, Any] | None, goals: Mapping[str, Any] | None
) -> list[str]:
    """Congratulation messages for each goal the entry reaches."""
    if not entry or not goals:
        return []
    out: list[str] = []
    for field_name, label in _GOAL_LABELS:
        value = metric_value(entry.get(field_name))
        goal = metric_value(goals.get(field_name))
        if value is not None and goal is not None and value >= goal:
            out.append(f"Congratulations! You reached your {label} goal!")
    return out


def health_alerts(entry: Mapping[str, Any] | None) -> list[str]:
    """User-facing alert texts for concerning values in one entry."""
    if not entry:
        return []
    alerts: list[str] = []
    sleep = metric_value(entry.get("sleep"))
    if sleep is not None and sleep < 6:
        alerts.append("You got less than 6 hours of sleep. Consider resting more.")
    heart_rate = metric_value(entry.get("heartRate"))
    if heart_rate is not None and heart_rate > 100:
        alerts.append(
            "Your heart rate is elevated. Consider consulting a doctor if this persists."
        )
    water = metric_value(entry.get("water"))
    if water is not None and water < 3:
        alerts.append("Low water intake detected. Stay hydrated!")
    steps = metric_value(entry.get("steps"))
    if steps is not None and steps < 2000:
        alerts.append("Very low activity today. Try to get some movement in.")
    return alerts


class ReminderScheduler:
    """Single daily reminder job on an APScheduler background scheduler.

    Scheduling again replaces the previous job; ``cancel`` removes it.
    """

    def __init__(
        self,
        notifier: Notifier = log_notifier,
        scheduler: Any | None = None,
    ) -> None:
        self._notifier = notifier
        self._scheduler = scheduler if scheduler is not None else BackgroundScheduler()

    def schedule_daily(
        self, time_value: str = DEFAULT_REMINDER_TIME, now: datetime | None = None
    ) -> datetime:
        """Install the daily job and return its next fire time."""
        hour, minute = parse_reminder_time(time_value)
        if not self._scheduler.running:
            self._scheduler.start()
        self._scheduler.add_job(
            self.fire,
            trigger="cron",
            hour=hour,
            minute=minute,
            id=REMINDER_JOB_ID,
            replace_existing=True,
        )
        next_at = next_reminder_at(time_value, now or datetime.now())
        logger.info("Daily reminder scheduled for %s", next_at.isoformat())
        return next_at

    def cancel(self) -> bool:
        """Remove the daily job; False when none was scheduled."""
        if self._scheduler.get_job(REMINDER_JOB_ID) is None:
            return False
        self._scheduler.remove_job(REMINDER_JOB_ID)
        logger.info("Daily reminder cancelled")
        return True

    def apply_settings(
        self, settings: Mapping[str, Any], now: datetime | None = None
    ) -> datetime | None:
        """Schedule from stored settings, or cancel when reminders are off."""
        reminder_time = settings.get("reminderTime")
        if settings.get("notifications") and reminder_time:
            return self.schedule_daily(str(reminder_time), now=now)
        self.cancel()
        return None

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    def fire(self) -> None:
        self._notifier(REMINDER_TITLE, REMINDER_BODY)
