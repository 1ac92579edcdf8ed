from datetime import datetime, timedelta, timezone

import pytest

from team_budget.storage import InMemoryModelStore


def model_payload(**overrides):
    """Valid create payload for a Handball team; keyword args override fields."""
    payload = {
        'name': '2025-2026 Handball Féminin D4 Tous',
        'school_name': '',
        'school_code': '',
        'number_of_teams': 1,
        'discipline': 'Handball',
        'level': 'Tous',
        'category': 'D4',
        'gender': 'Féminin',
        'season_year': '2025-2026',
        'head_coach_rate': 35,
        'assistant_coach_rate': 27,
        'employer_contribution_rate': 0,
        'season_start_date': '2025-09-14',
        'season_end_date': '2026-03-22',
        'practices_per_week': 2,
        'practice_duration': 1.5,
        'num_games': 12,
        'game_duration': 3.5,
        'playoff_start_date': '2026-03-29',
        'playoff_end_date': '2026-05-10',
        'playoff_final_days': 2,
        'playoff_finals_duration': 8,
        'tournament_bonus': 500,
        'federation_fee': 1148,
        'transportation_fee': 0,
    }
    payload.update(overrides)
    return payload


class FakeClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start=datetime(2025, 9, 1, 12, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


class FailingStore:
    """Store whose every call raises the given exception."""

    def __init__(self, error):
        self.error = error

    async def create(self, fields):
        raise self.error

    async def list(self):
        raise self.error

    async def get(self, model_id):
        raise self.error

    async def update(self, model_id, fields):
        raise self.error

    async def delete(self, model_id):
        raise self.error


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryModelStore(clock=clock)
