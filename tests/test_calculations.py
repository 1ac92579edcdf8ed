from datetime import date, timedelta

import pytest

from team_budget.calculations import COST_LINE_LABELS, compute_budget, cost_breakdown
from team_budget.schema import BudgetConfiguration
from team_budget.weeks import HolidayCalendar

NO_HOLIDAYS = HolidayCalendar()
SEASON_START = date(2025, 9, 14)


def _config(**overrides):
    values = dict(
        discipline='Handball',
        level='Tous',
        category='D4',
        head_coach_rate=35.0,
        assistant_coach_rate=27.0,
        employer_contribution_rate=0.0,
        season_start_date=SEASON_START,
        season_end_date=SEASON_START + timedelta(weeks=25),
        practices_per_week=2,
        practice_duration=1.5,
        num_games=12,
        game_duration=3.5,
        tournament_bonus=500.0,
        federation_fee=1148.0,
        transportation_fee=0.0,
    )
    values.update(overrides)
    return BudgetConfiguration(**values)


def test_regular_season_end_to_end():
    result = compute_budget(_config(), NO_HOLIDAYS)

    assert result.active_season_weeks == 25
    assert result.total_season_hours == pytest.approx(117)
    assert result.cost_season_head_coach == pytest.approx(4095)
    assert result.cost_season_assistant_coach == pytest.approx(3159)
    assert result.sub_total_regular_season == pytest.approx(8902)


def test_no_playoff_dates_means_no_playoff_practice():
    result = compute_budget(_config(), NO_HOLIDAYS)

    assert result.active_playoff_weeks == 0
    assert result.total_playoff_hours == 0
    assert result.sub_total_playoffs == 0
    assert result.grand_total == pytest.approx(8902)


def test_playoff_hours_include_finals():
    config = _config(
        playoff_start_date=date(2026, 3, 29),
        playoff_end_date=date(2026, 5, 10),
        playoff_final_days=2,
        playoff_finals_duration=8.0,
    )
    result = compute_budget(config, NO_HOLIDAYS)

    assert result.active_playoff_weeks == 6
    assert result.total_playoff_hours == pytest.approx(6 * 3 + 16)
    assert result.cost_playoffs_head_coach == pytest.approx(34 * 35)
    assert result.cost_playoffs_assistant_coach == pytest.approx(34 * 27)
    assert result.grand_total == pytest.approx(result.sub_total_regular_season + 34 * 62)


def test_employer_contribution_scales_salaries_only():
    result = compute_budget(_config(employer_contribution_rate=10.0), NO_HOLIDAYS)

    assert result.cost_season_head_coach == pytest.approx(4095 * 1.1)
    assert result.cost_season_assistant_coach == pytest.approx(3159 * 1.1)
    assert result.sub_total_regular_season == pytest.approx((4095 + 3159) * 1.1 + 1648)


def test_holiday_weeks_reduce_season_hours():
    config = _config(season_end_date=date(2026, 3, 22))
    with_holidays = compute_budget(config)
    without = compute_budget(config, NO_HOLIDAYS)

    assert without.active_season_weeks - with_holidays.active_season_weeks == 3
    assert without.total_season_hours - with_holidays.total_season_hours == pytest.approx(9)


def test_zero_configuration_costs_nothing():
    result = compute_budget(BudgetConfiguration())

    assert result.grand_total == 0
    assert result.active_season_weeks == 0


SEASON_HEAD = 'cost_season_head_coach'
SEASON_ASSISTANT = 'cost_season_assistant_coach'
PLAYOFFS_HEAD = 'cost_playoffs_head_coach'
PLAYOFFS_ASSISTANT = 'cost_playoffs_assistant_coach'
ALL_COACHING = (SEASON_HEAD, SEASON_ASSISTANT, PLAYOFFS_HEAD, PLAYOFFS_ASSISTANT)
COST_FIELDS = ALL_COACHING + ('sub_total_regular_season', 'sub_total_playoffs', 'grand_total')


def _config_with_playoffs(**overrides):
    values = dict(
        employer_contribution_rate=13.4,
        playoff_start_date=date(2026, 3, 29),
        playoff_end_date=date(2026, 5, 10),
        playoff_final_days=2,
        playoff_finals_duration=8.0,
    )
    values.update(overrides)
    return _config(**values)


@pytest.mark.parametrize('field,value,grows', [
    ('head_coach_rate', 36.0, (SEASON_HEAD, PLAYOFFS_HEAD)),
    ('assistant_coach_rate', 28.0, (SEASON_ASSISTANT, PLAYOFFS_ASSISTANT)),
    ('employer_contribution_rate', 15.0, ALL_COACHING),
    ('practices_per_week', 3, ALL_COACHING),
    ('practice_duration', 2.0, ALL_COACHING),
    ('num_games', 13, (SEASON_HEAD, SEASON_ASSISTANT)),
    ('game_duration', 4.0, (SEASON_HEAD, SEASON_ASSISTANT)),
    ('playoff_final_days', 3, (PLAYOFFS_HEAD, PLAYOFFS_ASSISTANT)),
    ('playoff_finals_duration', 9.0, (PLAYOFFS_HEAD, PLAYOFFS_ASSISTANT)),
    ('tournament_bonus', 600.0, ('sub_total_regular_season',)),
    ('federation_fee', 1200.0, ('sub_total_regular_season',)),
    ('transportation_fee', 250.0, ('sub_total_regular_season',)),
])
def test_raising_one_input_never_lowers_a_cost(field, value, grows):
    base = compute_budget(_config_with_playoffs(), NO_HOLIDAYS).to_dict()
    raised = compute_budget(_config_with_playoffs(**{field: value}), NO_HOLIDAYS).to_dict()

    for name in COST_FIELDS:
        assert raised[name] >= base[name], name
    for name in grows:
        assert raised[name] > base[name], name
    assert raised['grand_total'] > base['grand_total']


def test_compute_budget_is_deterministic():
    config = _config(season_end_date=date(2026, 3, 22))
    assert compute_budget(config) == compute_budget(config)


def test_cost_breakdown_sums_to_grand_total():
    config = _config(
        transportation_fee=320.0,
        playoff_start_date=date(2026, 3, 29),
        playoff_end_date=date(2026, 5, 10),
        playoff_final_days=1,
        playoff_finals_duration=6.0,
    )
    result = compute_budget(config, NO_HOLIDAYS)
    breakdown = cost_breakdown(config, result)

    assert list(breakdown.index) == list(COST_LINE_LABELS.values())
    assert breakdown.sum() == pytest.approx(result.grand_total)
    assert breakdown['Frais de transport'] == 320.0
