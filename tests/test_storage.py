import asyncio
import logging
import sqlite3

import pytest

from conftest import FakeClock, model_payload
from team_budget.errors import StorageUnavailable
from team_budget.schema import coerce_fields
from team_budget.storage import (
    FIELD_COLUMNS,
    InMemoryModelStore,
    SqliteModelStore,
    create_store,
)


def _fields(**overrides):
    return coerce_fields(model_payload(**overrides))


@pytest.fixture(params=['memory', 'sqlite'])
def store(request, tmp_path):
    if request.param == 'memory':
        return InMemoryModelStore(clock=FakeClock())
    return SqliteModelStore(tmp_path / 'models.db', clock=FakeClock())


@pytest.mark.asyncio
async def test_create_assigns_id_and_created_at(store):
    model = await store.create(_fields())

    assert len(model.id) == 32
    assert model.created_at is not None
    assert model.updated_at is None
    assert model.configuration.head_coach_rate == 35.0


@pytest.mark.asyncio
async def test_list_keeps_insertion_order(store):
    first = await store.create(_fields(name='A'))
    second = await store.create(_fields(name='B'))

    assert [m.id for m in await store.list()] == [first.id, second.id]


@pytest.mark.asyncio
async def test_get_returns_stored_model(store):
    created = await store.create(_fields(number_of_teams=3))
    fetched = await store.get(created.id)

    assert fetched == created
    assert fetched.number_of_teams == 3


@pytest.mark.asyncio
async def test_get_unknown_id_returns_none(store):
    assert await store.get('missing') is None


@pytest.mark.asyncio
async def test_update_merges_fields_and_sets_updated_at(store):
    created = await store.create(_fields())
    updated = await store.update(created.id, {'num_games': 14, 'federation_fee': 1200.0})

    assert updated.configuration.num_games == 14
    assert updated.configuration.federation_fee == 1200.0
    assert updated.configuration.head_coach_rate == 35.0
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None
    assert updated.updated_at > created.created_at


@pytest.mark.asyncio
async def test_update_unknown_id_returns_none(store):
    assert await store.update('missing', {'num_games': 1}) is None


@pytest.mark.asyncio
async def test_delete_reports_success(store):
    created = await store.create(_fields())

    assert await store.delete(created.id) == {'success': True}
    assert await store.get(created.id) is None
    assert await store.delete(created.id) == {'success': False}


@pytest.mark.asyncio
async def test_sqlite_persists_across_instances(tmp_path):
    db_path = tmp_path / 'models.db'
    created = await SqliteModelStore(db_path).create(_fields(transportation_fee=125.5))

    reopened = await SqliteModelStore(db_path).get(created.id)
    assert reopened.configuration.transportation_fee == 125.5
    assert reopened.configuration.season_start_date == created.configuration.season_start_date


@pytest.mark.asyncio
async def test_sqlite_stores_decimals_as_text(tmp_path):
    store = SqliteModelStore(tmp_path / 'models.db')
    created = await store.create(_fields())

    with store.connect() as conn:
        row = conn.execute("SELECT head_coach_rate FROM budget_models WHERE id = ?", (created.id,)).fetchone()
    assert row['head_coach_rate'] == '35.00'


@pytest.mark.asyncio
async def test_sqlite_migrates_older_table(tmp_path):
    db_path = tmp_path / 'legacy.db'
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE budget_models (
            id TEXT PRIMARY KEY, name TEXT NOT NULL, number_of_teams INTEGER NOT NULL DEFAULT 1,
            discipline TEXT NOT NULL, level TEXT NOT NULL, category TEXT NOT NULL,
            head_coach_rate TEXT NOT NULL, assistant_coach_rate TEXT NOT NULL,
            employer_contribution_rate TEXT NOT NULL,
            season_start_date TEXT, season_end_date TEXT,
            practices_per_week INTEGER NOT NULL, practice_duration REAL NOT NULL,
            num_games INTEGER NOT NULL, game_duration REAL NOT NULL,
            playoff_start_date TEXT, playoff_end_date TEXT,
            playoff_final_days INTEGER NOT NULL, playoff_finals_duration REAL NOT NULL,
            tournament_bonus TEXT NOT NULL, federation_fee TEXT NOT NULL,
            created_at TEXT NOT NULL, updated_at TEXT
        )
    """)
    conn.execute("""
        INSERT INTO budget_models VALUES (
            'legacy1', 'Ancien modèle', 2, 'Basketball', 'Cadet', 'D3',
            '30.00', '25.00', '0.00', '2025-09-14T00:00:00+00:00', '2026-03-22T00:00:00+00:00',
            2, 1.5, 10, 3.0, NULL, NULL, 0, 0.0, '0.00', '900.00',
            '2025-08-01T10:00:00+00:00', NULL
        )
    """)
    conn.commit()
    conn.close()

    store = SqliteModelStore(db_path)
    legacy = await store.get('legacy1')

    assert legacy.name == 'Ancien modèle'
    assert legacy.school_name == ''
    assert legacy.configuration.transportation_fee == 0.0
    assert legacy.configuration.playoff_start_date is None

    with store.connect() as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(budget_models)")}
    assert {'school_name', 'school_code', 'gender', 'season_year', 'transportation_fee'} <= columns


@pytest.mark.asyncio
async def test_sqlite_failure_raises_storage_unavailable(tmp_path):
    # A directory cannot be opened as a database file
    store = SqliteModelStore(tmp_path)

    with pytest.raises(StorageUnavailable) as excinfo:
        await store.list()
    assert excinfo.value.operation == 'list'
    assert isinstance(excinfo.value.__cause__, (sqlite3.Error, OSError))


def test_create_store_selects_backend(tmp_path):
    assert isinstance(create_store('memory'), InMemoryModelStore)
    sqlite_store = create_store('sqlite', db_path=tmp_path / 'x.db')
    assert isinstance(sqlite_store, SqliteModelStore)
    assert sqlite_store.db_path == tmp_path / 'x.db'


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError, match='postgres'):
        create_store('postgres')


@pytest.mark.asyncio
async def test_sqlite_fresh_store_handles_concurrent_first_calls(tmp_path):
    store = SqliteModelStore(tmp_path / 'models.db')

    results = await asyncio.gather(
        *[store.create(_fields(name=f'Équipe {i}')) for i in range(4)],
        *[store.list() for _ in range(4)],
    )

    assert len({model.id for model in results[:4]}) == 4
    assert len(await store.list()) == 4


def test_sqlite_fresh_database_needs_no_migration(tmp_path, caplog):
    store = SqliteModelStore(tmp_path / 'models.db')
    with caplog.at_level(logging.INFO, logger='team_budget.storage'):
        store.init_db()
        store.init_db()

    assert 'Added column' not in caplog.text
    with store.connect() as conn:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(budget_models)")}
    assert set(FIELD_COLUMNS) <= columns
