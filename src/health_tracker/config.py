"""Configuracion de rutas (directorio base, base de datos, salidas)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from health_tracker.storage import DEFAULT_DATA_PATH

ENV_HOME = "HEALTH_TRACKER_HOME"
DEFAULT_HOME = Path.home() / ".health_tracker"
DB_FILENAME = "health_tracker.sqlite3"


@dataclass(frozen=True)
class TrackerConfig:
    """Resolved paths for one data profile."""

    base_dir: Path
    db_path: Path
    export_dir: Path
    default_data_path: Path


def load_config(
    base_dir: str | Path | None = None,
    *,
    default_data_path: Path | None = None,
) -> TrackerConfig:
    """Resolve paths: explicit ``base_dir``, then ``$HEALTH_TRACKER_HOME``, then ~."""
    raw = base_dir if base_dir is not None else os.environ.get(ENV_HOME)
    base = Path(raw).expanduser().resolve() if raw else DEFAULT_HOME
    return TrackerConfig(
        base_dir=base,
        db_path=base / DB_FILENAME,
        export_dir=base / "exports",
        default_data_path=default_data_path or DEFAULT_DATA_PATH,
    )
