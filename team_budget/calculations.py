"""Budget cost engine.

Turns one team's :class:`~team_budget.schema.BudgetConfiguration` into an
itemized :class:`BudgetResult`.  The engine is a pure function: it keeps no
state between calls and never rounds.  Rounding happens only when amounts
are formatted for display, so that sums across many models do not
accumulate rounding error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict

import pandas as pd

from .schema import BudgetConfiguration
from .weeks import DEFAULT_HOLIDAY_CALENDAR, HolidayCalendar, count_active_weeks

# Row labels of the itemized budget, in display order
COST_LINE_LABELS: Dict[str, str] = {
    'cost_season_head_coach': 'Entraîneur-chef (Saison)',
    'cost_season_assistant_coach': 'Entraîneur adjoint (Saison)',
    'cost_playoffs_head_coach': 'Entraîneur-chef (Séries)',
    'cost_playoffs_assistant_coach': 'Entraîneur adjoint (Séries)',
    'tournament_bonus': 'Frais Tournoi',
    'transportation_fee': 'Frais de transport',
    'federation_fee': 'Frais Fédération',
}


@dataclass(frozen=True)
class BudgetResult:
    """Derived costs of one team; recomputed whenever the configuration changes."""

    active_season_weeks: int
    active_playoff_weeks: int
    total_season_hours: float
    total_playoff_hours: float
    cost_season_head_coach: float
    cost_season_assistant_coach: float
    cost_playoffs_head_coach: float
    cost_playoffs_assistant_coach: float
    sub_total_regular_season: float
    sub_total_playoffs: float
    grand_total: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_budget(
    config: BudgetConfiguration,
    holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR,
) -> BudgetResult:
    """Compute the itemized budget of a single team.

    Args:
        config: Validated budget configuration
        holidays: Weeks excluded from the practice-week counts

    Returns:
        Per-role coaching costs, phase sub-totals and the grand total

    Example:
        >>> result = compute_budget(BudgetConfiguration(head_coach_rate=35, num_games=12, game_duration=3.5))
        >>> result.cost_season_head_coach
        1470.0
    """
    salary_multiplier = 1 + config.employer_contribution_rate / 100

    active_season_weeks = count_active_weeks(config.season_start_date, config.season_end_date, holidays)
    active_playoff_weeks = count_active_weeks(config.playoff_start_date, config.playoff_end_date, holidays)

    weekly_practice_hours = config.practices_per_week * config.practice_duration
    total_season_hours = (
        active_season_weeks * weekly_practice_hours
        + config.num_games * config.game_duration
    )
    total_playoff_hours = (
        active_playoff_weeks * weekly_practice_hours
        + config.playoff_final_days * config.playoff_finals_duration
    )

    cost_season_head_coach = total_season_hours * config.head_coach_rate * salary_multiplier
    cost_season_assistant_coach = total_season_hours * config.assistant_coach_rate * salary_multiplier
    cost_playoffs_head_coach = total_playoff_hours * config.head_coach_rate * salary_multiplier
    cost_playoffs_assistant_coach = total_playoff_hours * config.assistant_coach_rate * salary_multiplier

    sub_total_regular_season = (
        cost_season_head_coach
        + cost_season_assistant_coach
        + config.tournament_bonus
        + config.federation_fee
        + config.transportation_fee
    )
    sub_total_playoffs = cost_playoffs_head_coach + cost_playoffs_assistant_coach

    return BudgetResult(
        active_season_weeks=active_season_weeks,
        active_playoff_weeks=active_playoff_weeks,
        total_season_hours=total_season_hours,
        total_playoff_hours=total_playoff_hours,
        cost_season_head_coach=cost_season_head_coach,
        cost_season_assistant_coach=cost_season_assistant_coach,
        cost_playoffs_head_coach=cost_playoffs_head_coach,
        cost_playoffs_assistant_coach=cost_playoffs_assistant_coach,
        sub_total_regular_season=sub_total_regular_season,
        sub_total_playoffs=sub_total_playoffs,
        grand_total=sub_total_regular_season + sub_total_playoffs,
    )


def cost_breakdown(config: BudgetConfiguration, result: BudgetResult) -> pd.Series:
    """Itemized cost lines indexed by display label.

    Fixed fees come straight from the configuration; coaching lines come
    from the computed result.  The values sum to ``result.grand_total``.
    """
    values = result.to_dict()
    values.update(
        tournament_bonus=config.tournament_bonus,
        transportation_fee=config.transportation_fee,
        federation_fee=config.federation_fee,
    )
    return pd.Series(
        {label: float(values[key]) for key, label in COST_LINE_LABELS.items()},
        name='Coût',
        dtype=float,
    )
