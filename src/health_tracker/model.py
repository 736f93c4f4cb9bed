"""Modelos tipados: documento, entradas diarias y resultados derivados."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Entry = dict[str, Any]
Goals = dict[str, Any]
HealthDocument = dict[str, Any]

NUMERIC_FIELDS: tuple[str, ...] = (
    "steps",
    "heartRate",
    "sleep",
    "water",
    "calories",
)
TEXT_FIELDS: tuple[str, ...] = ("mood", "notes")

DEFAULT_SETTINGS: dict[str, Any] = {"theme": "light", "notifications": True}


def empty_document() -> HealthDocument:
    """Minimal document used when no default dataset is available."""
    return {
        "user": {},
        "goals": {},
        "settings": dict(DEFAULT_SETTINGS),
        "entries": [],
    }


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a store operation that may fail without raising."""

    success: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "") -> StoreResult:
        return cls(True, message)

    @classmethod
    def fail(cls, message: str) -> StoreResult:
        return cls(False, message)


@dataclass(frozen=True)
class HealthStats:
    """Averages over a list of entries."""

    avg_steps: float = 0.0
    avg_heart_rate: float = 0.0
    avg_sleep: float = 0.0
    avg_water: float = 0.0
    avg_calories: float = 0.0
    total_entries: int = 0


@dataclass(frozen=True)
class HealthFlag:
    """Health concern detected from recent entries."""

    type: str  # "warning" | "danger"
    message: str
    metric: str


@dataclass(frozen=True)
class Recommendation:
    """One categorized tip for the latest entry."""

    type: str
    category: str
    message: str
    priority: str
    tips: tuple[str, ...] = ()


@dataclass(frozen=True)
class Trend:
    """Direction of a metric average over several entries."""

    category: str
    direction: str  # "concern" | "positive"
    message: str
    value: str


@dataclass(frozen=True)
class TrendReport:
    trends: list[Trend] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DailyTip:
    category: str
    tip: str
