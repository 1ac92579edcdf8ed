"""Budget model persistence.

The rest of the app only relies on the :class:`ModelStore` contract
(create / list / get / update / delete).  Store methods are coroutines
because a backend may sit behind network I/O; the SQLite backend runs its
blocking calls in a worker thread.

Writes are last-write-wins: there is no locking or version token, and two
concurrent updates of the same model are applied in whatever order the
backend receives them.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple

from .config import DB_PATH, STORE_KIND, ensure_data_directories
from .errors import StorageUnavailable
from .schema import (
    MODEL_FIELDS,
    BudgetModel,
    coerce_fields,
    serialize_value,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModelStore(Protocol):
    """CRUD contract over budget model records."""

    async def create(self, fields: Mapping[str, Any]) -> BudgetModel: ...

    async def list(self) -> List[BudgetModel]: ...

    async def get(self, model_id: str) -> Optional[BudgetModel]: ...

    async def update(self, model_id: str, fields: Mapping[str, Any]) -> Optional[BudgetModel]: ...

    async def delete(self, model_id: str) -> Dict[str, bool]: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryModelStore:
    """Dictionary-backed store; records keep insertion order."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._records: Dict[str, Tuple[Dict[str, Any], datetime, Optional[datetime]]] = {}

    async def create(self, fields: Mapping[str, Any]) -> BudgetModel:
        model_id = uuid.uuid4().hex
        self._records[model_id] = (dict(fields), self._clock(), None)
        return self._build(model_id)

    async def list(self) -> List[BudgetModel]:
        return [self._build(model_id) for model_id in list(self._records)]

    async def get(self, model_id: str) -> Optional[BudgetModel]:
        if model_id not in self._records:
            return None
        return self._build(model_id)

    async def update(self, model_id: str, fields: Mapping[str, Any]) -> Optional[BudgetModel]:
        existing = self._records.get(model_id)
        if existing is None:
            return None
        values, created_at, _ = existing
        merged = {**values, **fields}
        self._records[model_id] = (merged, created_at, self._clock())
        return self._build(model_id)

    async def delete(self, model_id: str) -> Dict[str, bool]:
        return {'success': self._records.pop(model_id, None) is not None}

    def _build(self, model_id: str) -> BudgetModel:
        values, created_at, updated_at = self._records[model_id]
        return BudgetModel.from_fields(model_id, dict(values), created_at, updated_at)


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS budget_models (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    school_name TEXT NOT NULL DEFAULT '',
    school_code TEXT NOT NULL DEFAULT '',
    number_of_teams INTEGER NOT NULL DEFAULT 1,
    discipline TEXT NOT NULL,
    level TEXT NOT NULL,
    category TEXT NOT NULL,
    gender TEXT NOT NULL DEFAULT '',
    season_year TEXT NOT NULL DEFAULT '',
    head_coach_rate TEXT NOT NULL,
    assistant_coach_rate TEXT NOT NULL,
    employer_contribution_rate TEXT NOT NULL,
    season_start_date TEXT,
    season_end_date TEXT,
    practices_per_week INTEGER NOT NULL,
    practice_duration REAL NOT NULL,
    num_games INTEGER NOT NULL,
    game_duration REAL NOT NULL,
    playoff_start_date TEXT,
    playoff_end_date TEXT,
    playoff_final_days INTEGER NOT NULL,
    playoff_finals_duration REAL NOT NULL,
    tournament_bonus TEXT NOT NULL,
    federation_fee TEXT NOT NULL,
    transportation_fee TEXT NOT NULL DEFAULT '0.00',
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_budget_models_name ON budget_models (name);
CREATE INDEX IF NOT EXISTS ix_budget_models_discipline ON budget_models (discipline);
"""

# Columns missing from databases created before they were added to SCHEMA_SQL
MIGRATION_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ('school_name', "TEXT NOT NULL DEFAULT ''"),
    ('school_code', "TEXT NOT NULL DEFAULT ''"),
    ('gender', "TEXT NOT NULL DEFAULT ''"),
    ('season_year', "TEXT NOT NULL DEFAULT ''"),
    ('transportation_fee', "TEXT NOT NULL DEFAULT '0.00'"),
)

FIELD_COLUMNS: Tuple[str, ...] = tuple(spec.name for spec in MODEL_FIELDS)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SqliteModelStore:
    """File-backed store using the standard library ``sqlite3`` driver."""

    def __init__(self, db_path: Optional[Path] = None, clock: Clock = utcnow) -> None:
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self._clock = clock
        self._initialized = False
        self._init_lock = threading.Lock()

    # Public API -------------------------------------------------------------

    async def create(self, fields: Mapping[str, Any]) -> BudgetModel:
        return await self._run('create', self._create_sync, dict(fields))

    async def list(self) -> List[BudgetModel]:
        return await self._run('list', self._list_sync)

    async def get(self, model_id: str) -> Optional[BudgetModel]:
        return await self._run('get', self._get_sync, model_id)

    async def update(self, model_id: str, fields: Mapping[str, Any]) -> Optional[BudgetModel]:
        return await self._run('update', self._update_sync, model_id, dict(fields))

    async def delete(self, model_id: str) -> Dict[str, bool]:
        return await self._run('delete', self._delete_sync, model_id)

    def init_db(self) -> None:
        """Create the table and apply column migrations, once per store."""
        with self._init_lock:
            if self._initialized:
                return
            with self.connect() as conn:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
                self._migrate_database(conn)
            self._initialized = True

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self.db_path == DB_PATH:
            ensure_data_directories()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    # Internal ----------------------------------------------------------------

    async def _run(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(self._call, func, *args)
        except (sqlite3.Error, OSError) as e:
            logger.error("Budget model %s failed on %s: %s", operation, self.db_path, e)
            raise StorageUnavailable(operation) from e

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        if not self._initialized:
            self.init_db()
        return func(*args)

    def _migrate_database(self, conn: sqlite3.Connection) -> None:
        """Add columns introduced by later versions of the form."""
        cursor = conn.cursor()
        cursor.execute("PRAGMA table_info(budget_models)")
        existing_columns = [row[1] for row in cursor.fetchall()]

        for column_name, column_type in MIGRATION_COLUMNS:
            if column_name not in existing_columns:
                cursor.execute(f"ALTER TABLE budget_models ADD COLUMN {column_name} {column_type}")
                logger.info("Added column %s to budget_models table", column_name)
        conn.commit()

    def _to_row(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        specs = {spec.name: spec for spec in MODEL_FIELDS}
        return {name: serialize_value(specs[name], value) for name, value in fields.items()}

    def _from_row(self, row: sqlite3.Row) -> BudgetModel:
        values = coerce_fields({name: row[name] for name in FIELD_COLUMNS})
        return BudgetModel.from_fields(
            row['id'],
            values,
            created_at=_parse_timestamp(row['created_at']),
            updated_at=_parse_timestamp(row['updated_at']),
        )

    def _fetch(self, conn: sqlite3.Connection, model_id: str) -> Optional[sqlite3.Row]:
        return conn.execute("SELECT * FROM budget_models WHERE id = ?", (model_id,)).fetchone()

    def _create_sync(self, fields: Dict[str, Any]) -> BudgetModel:
        model_id = uuid.uuid4().hex
        row = self._to_row(fields)
        row['id'] = model_id
        row['created_at'] = self._clock().isoformat()
        columns = list(row)
        sql = "INSERT INTO budget_models ({}) VALUES ({})".format(
            ", ".join(columns), ", ".join("?" for _ in columns)
        )
        with self.connect() as conn:
            conn.execute(sql, [row[c] for c in columns])
            conn.commit()
            created = self._fetch(conn, model_id)
        logger.info("Created budget model %s (%s)", model_id, fields.get('name'))
        return self._from_row(created)

    def _list_sync(self) -> List[BudgetModel]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM budget_models ORDER BY rowid ASC").fetchall()
        return [self._from_row(row) for row in rows]

    def _get_sync(self, model_id: str) -> Optional[BudgetModel]:
        with self.connect() as conn:
            row = self._fetch(conn, model_id)
        return self._from_row(row) if row is not None else None

    def _update_sync(self, model_id: str, fields: Dict[str, Any]) -> Optional[BudgetModel]:
        updates = self._to_row(fields)
        updates['updated_at'] = self._clock().isoformat()
        params = list(updates.values()) + [model_id]
        sql = f"UPDATE budget_models SET {', '.join(f'{c} = ?' for c in updates)} WHERE id = ?"
        with self.connect() as conn:
            cursor = conn.execute(sql, params)
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = self._fetch(conn, model_id)
        logger.info("Updated budget model %s (%s)", model_id, ", ".join(sorted(fields)) or "timestamp only")
        return self._from_row(row)

    def _delete_sync(self, model_id: str) -> Dict[str, bool]:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM budget_models WHERE id = ?", (model_id,))
            conn.commit()
            success = cursor.rowcount > 0
        if success:
            logger.info("Deleted budget model %s", model_id)
        return {'success': success}


def create_store(kind: Optional[str] = None, db_path: Optional[Path] = None) -> ModelStore:
    """Build the store selected by ``TEAM_BUDGET_STORE`` (or ``kind``).

    Raises:
        ValueError: For an unknown store kind
    """
    selected = (kind or STORE_KIND).strip().lower()
    if selected == 'memory':
        return InMemoryModelStore()
    if selected == 'sqlite':
        return SqliteModelStore(db_path)
    raise ValueError(f"Unknown budget model store '{selected}'. Expected 'sqlite' or 'memory'.")
