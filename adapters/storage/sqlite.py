"""SQLite time-series store backed by aiosqlite."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

from core.domain.errors import (
    DuplicateTimestamp,
    SampleNotFound,
    SeriesNotFound,
    StoreUnavailable,
)
from core.domain.models import MetricSample, as_utc

logger = structlog.get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS series (
    name TEXT PRIMARY KEY
);
CREATE TABLE IF NOT EXISTS samples (
    series TEXT NOT NULL REFERENCES series(name),
    timestamp_us INTEGER NOT NULL,
    value REAL NOT NULL,
    PRIMARY KEY (series, timestamp_us)
);
"""

_INSERT_SERIES = """
INSERT OR IGNORE INTO series (name) VALUES (?)
"""

_SELECT_SERIES = """
SELECT 1 FROM series WHERE name = ?
"""

_INSERT_SAMPLE = """
INSERT INTO samples (series, timestamp_us, value) VALUES (?, ?, ?)
"""

_SELECT_RANGE = """
SELECT timestamp_us, value
FROM samples
WHERE series = ? AND timestamp_us >= ? AND timestamp_us <= ?
ORDER BY timestamp_us ASC
"""

_SELECT_LATEST = """
SELECT timestamp_us, value
FROM samples
WHERE series = ?
ORDER BY timestamp_us DESC
LIMIT 1
"""

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)


def _to_micros(timestamp: datetime) -> int:
    # Integer microseconds keep keys exact; float seconds would not
    return (as_utc(timestamp) - _EPOCH) // _MICROSECOND


def _from_micros(micros: int) -> datetime:
    return _EPOCH + timedelta(microseconds=micros)


class SQLiteTimeSeriesStore:
    """SQLite implementation of TimeSeriesStore.

    Each operation opens its own aiosqlite connection, so readers never block
    each other. Appends are serialized with a lock on top of SQLite's own
    write locking. Duplicate timestamps are rejected by the primary key.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._append_lock = asyncio.Lock()
        self.logger = logger.bind(component="sqlite_store", db_path=db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get a database connection, creating tables if needed."""
        try:
            db = await aiosqlite.connect(self._db_path)
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"cannot open {self._db_path}: {e}") from e
        try:
            await db.executescript(_SCHEMA)
            yield db
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"sqlite operation failed: {e}") from e
        finally:
            await db.close()

    async def _require_series(self, db: aiosqlite.Connection, series: str) -> None:
        async with db.execute(_SELECT_SERIES, (series,)) as cursor:
            if await cursor.fetchone() is None:
                raise SeriesNotFound(series)

    async def ensure_series(self, series: str) -> None:
        async with self._connect() as db:
            await db.execute(_INSERT_SERIES, (series,))
            await db.commit()

    async def append(self, series: str, sample: MetricSample) -> None:
        async with self._append_lock, self._connect() as db:
            await db.execute(_INSERT_SERIES, (series,))
            try:
                await db.execute(
                    _INSERT_SAMPLE, (series, _to_micros(sample.timestamp), sample.value)
                )
            except aiosqlite.IntegrityError as e:
                await db.rollback()
                # Only the (series, timestamp_us) key conflict is a duplicate
                if "UNIQUE constraint failed" in str(e):
                    raise DuplicateTimestamp(series, sample.timestamp.isoformat()) from None
                raise StoreUnavailable(f"sample rejected by sqlite: {e}") from e
            await db.commit()

    async def query_range(
        self, series: str, start: datetime, end: datetime
    ) -> AsyncIterator[MetricSample]:
        async with self._connect() as db:
            await self._require_series(db, series)
            params = (series, _to_micros(start), _to_micros(end))
            async with db.execute(_SELECT_RANGE, params) as cursor:
                async for row in cursor:
                    yield MetricSample(timestamp=_from_micros(row[0]), value=row[1])

    async def latest(self, series: str) -> MetricSample:
        async with self._connect() as db:
            await self._require_series(db, series)
            async with db.execute(_SELECT_LATEST, (series,)) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise SampleNotFound(series)
        return MetricSample(timestamp=_from_micros(row[0]), value=row[1])
