"""Configuration management for the team budget planner.

This module centralizes all configuration values including paths,
holiday weeks, report ordering and environment variable overrides.
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Dict, Tuple

# Base project root - assumes this file is in team_budget/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("TEAM_BUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORTS_DIR = Path(os.getenv("TEAM_BUDGET_EXPORTS_DIR", DATA_DIR / "exports"))

# Database
DB_PATH = Path(
    os.getenv("TEAM_BUDGET_DB_PATH", DATA_DIR / "budget_models.db")
).resolve()

# Which ModelStore backend the app uses: "sqlite" or "memory"
STORE_KIND = os.getenv("TEAM_BUDGET_STORE", "sqlite").strip().lower()

# Weeks start on Sunday 00:00 UTC (Python weekday numbering: Monday=0 ... Sunday=6)
FIRST_DAY_OF_WEEK = 6

# Winter break, New Year and spring break weeks for the 2025-2026 school year
DEFAULT_HOLIDAY_WEEKS: Tuple[str, ...] = (
    "2025-12-21",
    "2025-12-28",
    "2026-03-01",
)

# Display order of levels inside a discipline in the detailed report
LEVEL_RANKING: Dict[str, int] = {
    "Atome": 1,
    "Benjamin": 2,
    "Cadet": 3,
    "Juvénile": 4,
    "Juvenile": 4,
    "Tous": 5,
}
UNRANKED_LEVEL = 99


def parse_holiday_weeks(raw: str) -> Tuple[date, ...]:
    """Parse a comma-separated list of ISO dates.

    Args:
        raw: Value such as ``"2025-12-21, 2026-03-01"``

    Returns:
        Tuple of dates in the given order

    Raises:
        ValueError: If any entry is not an ISO ``YYYY-MM-DD`` date
    """
    dates = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            dates.append(date.fromisoformat(token))
        except ValueError as e:
            raise ValueError(f"Invalid holiday week date '{token}': {e}") from e
    return tuple(dates)


def get_holiday_week_dates() -> Tuple[date, ...]:
    """Holiday week dates, honouring the ``TEAM_BUDGET_HOLIDAY_WEEKS`` override."""
    override = os.getenv("TEAM_BUDGET_HOLIDAY_WEEKS")
    if override:
        return parse_holiday_weeks(override)
    return parse_holiday_weeks(",".join(DEFAULT_HOLIDAY_WEEKS))


def level_rank(level: str) -> int:
    """Position of a level in the report ordering; unknown levels sort last."""
    return LEVEL_RANKING.get((level or "").strip(), UNRANKED_LEVEL)


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORTS_DIR, DB_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)
