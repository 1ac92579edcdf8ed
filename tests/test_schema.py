from datetime import datetime, timezone

import pytest

from conftest import model_payload
from team_budget.errors import ValidationError
from team_budget.schema import (
    FIELDS_BY_KEY,
    BudgetConfiguration,
    BudgetModel,
    coerce_fields,
    coerce_value,
    generate_model_name,
    serialize_value,
)


def test_coerce_fields_fills_optional_defaults():
    payload = model_payload()
    for key in ('school_name', 'school_code', 'number_of_teams', 'gender', 'season_year'):
        payload.pop(key)
    fields = coerce_fields(payload)

    assert fields['school_name'] == ''
    assert fields['number_of_teams'] == 1
    assert fields['gender'] == ''


def test_coerce_fields_parses_database_strings():
    fields = coerce_fields(model_payload(
        head_coach_rate='35.00',
        employer_contribution_rate='13,4',
        federation_fee='1 148,00',
        practices_per_week='2',
    ))

    assert fields['head_coach_rate'] == 35.0
    assert fields['employer_contribution_rate'] == pytest.approx(13.4)
    assert fields['federation_fee'] == 1148.0
    assert fields['practices_per_week'] == 2
    assert isinstance(fields['practices_per_week'], int)


def test_coerce_fields_accepts_camel_case_aliases():
    payload = model_payload()
    payload['headCoachRate'] = payload.pop('head_coach_rate')
    payload['numberOfTeams'] = 3
    payload.pop('number_of_teams')
    fields = coerce_fields(payload)

    assert fields['head_coach_rate'] == 35.0
    assert fields['number_of_teams'] == 3


def test_dates_become_utc_datetimes():
    fields = coerce_fields(model_payload())

    assert fields['season_start_date'] == datetime(2025, 9, 14, tzinfo=timezone.utc)
    assert fields['playoff_end_date'] == datetime(2026, 5, 10, tzinfo=timezone.utc)


def test_blank_dates_are_missing():
    fields = coerce_fields(model_payload(playoff_start_date='', playoff_end_date=None))

    assert fields['playoff_start_date'] is None
    assert fields['playoff_end_date'] is None


def test_all_errors_are_reported_together():
    payload = model_payload(head_coach_rate=-1, num_games=2.5, season_start_date='someday', colour='red')
    payload.pop('discipline')

    with pytest.raises(ValidationError) as excinfo:
        coerce_fields(payload)

    errors = excinfo.value.errors
    assert set(errors) == {'head_coach_rate', 'num_games', 'season_start_date', 'colour', 'discipline'}
    assert errors['colour'] == 'unknown field'
    assert errors['discipline'] == 'is required'


@pytest.mark.parametrize('value', [True, None, float('nan'), float('inf'), 'abc', [35]])
def test_invalid_numbers_are_rejected(value):
    with pytest.raises(ValueError):
        coerce_value(FIELDS_BY_KEY['head_coach_rate'], value)


def test_number_of_teams_must_be_positive():
    with pytest.raises(ValidationError) as excinfo:
        coerce_fields(model_payload(number_of_teams=0))
    assert 'number_of_teams' in excinfo.value.errors


def test_partial_validation_only_checks_supplied_fields():
    assert coerce_fields({'numGames': '14'}, partial=True) == {'num_games': 14}

    with pytest.raises(ValidationError):
        coerce_fields({'name': '  '}, partial=True)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        coerce_fields({'unknown': 1}, partial=True)


def test_serialize_value_formats_decimals_and_dates():
    assert serialize_value(FIELDS_BY_KEY['federation_fee'], 1148) == '1148.00'
    assert serialize_value(FIELDS_BY_KEY['game_duration'], 3.5) == 3.5
    assert serialize_value(FIELDS_BY_KEY['season_start_date'], None) is None
    assert serialize_value(
        FIELDS_BY_KEY['season_start_date'], datetime(2025, 9, 14, tzinfo=timezone.utc)
    ) == '2025-09-14T00:00:00+00:00'


def test_generate_model_name_skips_empty_parts():
    values = model_payload(school_name='École Secondaire du Parc')
    assert generate_model_name(values) == '2025-2026 École Secondaire du Parc Handball Féminin D4 Tous'
    assert generate_model_name(model_payload(gender='')) == '2025-2026 Handball D4 Tous'


def test_configuration_from_raw_ignores_model_identity():
    config = BudgetConfiguration.from_raw({
        k: v for k, v in model_payload().items()
        if k not in ('name', 'school_name', 'school_code', 'number_of_teams')
    })
    assert config.discipline == 'Handball'
    assert config.tournament_bonus == 500.0


def test_configuration_from_raw_rejects_model_fields():
    with pytest.raises(ValidationError) as excinfo:
        BudgetConfiguration.from_raw(model_payload())
    assert excinfo.value.errors['name'] == 'unknown field'


def test_model_record_round_trip():
    created = datetime(2025, 9, 1, 12, tzinfo=timezone.utc)
    model = BudgetModel.from_fields('abc123', coerce_fields(model_payload(number_of_teams=2)), created_at=created)

    record = model.to_record()
    assert record['id'] == 'abc123'
    assert record['head_coach_rate'] == '35.00'
    assert record['created_at'] == '2025-09-01T12:00:00+00:00'
    assert record['updated_at'] is None

    restored = BudgetModel.from_fields(
        record['id'],
        coerce_fields({k: v for k, v in record.items() if k not in ('id', 'created_at', 'updated_at')}),
        created_at=created,
    )
    assert restored == model


def test_model_record_camel_case_keys():
    model = BudgetModel.from_fields('abc123', coerce_fields(model_payload()))
    record = model.to_record(camel_case=True)

    assert record['headCoachRate'] == '35.00'
    assert record['numberOfTeams'] == 1
    assert 'createdAt' in record and 'head_coach_rate' not in record


@pytest.mark.parametrize('value', ['now', 'today', ' Now ', '14/09/2025', 'Sept 14 2025'])
def test_dates_must_be_iso_strings(value):
    with pytest.raises(ValidationError) as excinfo:
        coerce_fields(model_payload(season_start_date=value))
    assert list(excinfo.value.errors) == ['season_start_date']


def test_iso_timestamps_are_accepted():
    fields = coerce_fields(model_payload(season_start_date='2025-09-14T00:00:00+00:00'))
    assert fields['season_start_date'] == datetime(2025, 9, 14, tzinfo=timezone.utc)
