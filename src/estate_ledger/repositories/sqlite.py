import json
import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

from estate_ledger.domain.estate import Estate
from estate_ledger.domain.events import EstateEvent
from estate_ledger.exceptions import ConcurrencyError, DuplicateEstateError
from estate_ledger.logging_config import get_logger
from estate_ledger.repositories.interfaces import EstateRepository
from estate_ledger.repositories.snapshot import estate_from_dict, estate_to_dict

logger = get_logger(__name__)


class SQLiteDatabase:
    """SQLite database connection manager."""

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path, check_same_thread=self._check_same_thread
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- One row per estate; the aggregate is stored as a JSON snapshot
            CREATE TABLE IF NOT EXISTS estates (
                id TEXT PRIMARY KEY,
                deceased_id TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                status TEXT NOT NULL,
                version INTEGER NOT NULL,
                snapshot TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Outbox of committed change events
            CREATE TABLE IF NOT EXISTS estate_events (
                id TEXT PRIMARY KEY,
                estate_id TEXT NOT NULL,
                estate_version INTEGER NOT NULL,
                event_type TEXT NOT NULL,
                payload TEXT NOT NULL,
                actor_id TEXT,
                occurred_at TEXT NOT NULL,
                published_at TEXT,
                FOREIGN KEY (estate_id) REFERENCES estates(id)
            );

            CREATE INDEX IF NOT EXISTS idx_estate_events_estate
                ON estate_events(estate_id, estate_version);
            CREATE INDEX IF NOT EXISTS idx_estate_events_unpublished
                ON estate_events(published_at);
            """
        )
        conn.commit()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteEstateRepository(EstateRepository):
    """SQLite implementation of EstateRepository.

    The snapshot and its events are written in one transaction. The
    version check is a compare-and-swap in the UPDATE's WHERE clause.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def find_by_id(self, estate_id: UUID) -> Estate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT snapshot FROM estates WHERE id = ?", (str(estate_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_estate(row)

    def find_by_deceased_id(self, deceased_id: UUID) -> Estate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT snapshot FROM estates WHERE deceased_id = ?", (str(deceased_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_estate(row)

    def exists_for_deceased(self, deceased_id: UUID) -> bool:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT 1 FROM estates WHERE deceased_id = ?", (str(deceased_id),)
        ).fetchone()
        return row is not None

    def list_all(self) -> Iterable[Estate]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT snapshot FROM estates ORDER BY name").fetchall()
        return [self._row_to_estate(row) for row in rows]

    def save(self, estate: Estate) -> list[EstateEvent]:
        conn = self._db.get_connection()
        expected_version = estate.version
        new_version = expected_version + 1
        snapshot = estate_to_dict(estate)
        snapshot["version"] = new_version
        now = datetime.now(UTC).isoformat()

        try:
            if expected_version == 0:
                self._insert(conn, estate, snapshot, now)
            else:
                cursor = conn.execute(
                    """
                    UPDATE estates SET
                        name = ?,
                        status = ?,
                        version = ?,
                        snapshot = ?,
                        updated_at = ?
                    WHERE id = ? AND version = ?
                    """,
                    (
                        estate.name,
                        estate.status.value,
                        new_version,
                        json.dumps(snapshot),
                        now,
                        str(estate.id),
                        expected_version,
                    ),
                )
                if cursor.rowcount == 0:
                    actual = self._current_version(conn, estate.id)
                    logger.warning(
                        "estate_version_conflict",
                        estate_id=str(estate.id),
                        expected_version=expected_version,
                        actual_version=actual,
                    )
                    raise ConcurrencyError(estate.id, expected_version, actual)

            conn.executemany(
                """
                INSERT INTO estate_events (id, estate_id, estate_version, event_type,
                                           payload, actor_id, occurred_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(event.id),
                        str(event.estate_id),
                        new_version,
                        event.event_type.value,
                        json.dumps(event.payload),
                        event.actor_id,
                        event.occurred_at.isoformat(),
                    )
                    for event in estate.pending_events
                ],
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise

        events = estate.mark_committed()
        logger.debug(
            "estate_saved",
            estate_id=str(estate.id),
            version=estate.version,
            event_count=len(events),
        )
        return events

    def _insert(
        self, conn: sqlite3.Connection, estate: Estate, snapshot: dict, now: str
    ) -> None:
        try:
            conn.execute(
                """
                INSERT INTO estates (id, deceased_id, name, status, version, snapshot, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(estate.id),
                    str(estate.deceased_id),
                    estate.name,
                    estate.status.value,
                    snapshot["version"],
                    json.dumps(snapshot),
                    now,
                ),
            )
        except sqlite3.IntegrityError:
            actual = self._current_version(conn, estate.id)
            if actual is not None:
                raise ConcurrencyError(estate.id, 0, actual) from None
            raise DuplicateEstateError(estate.deceased_id) from None

    def _current_version(self, conn: sqlite3.Connection, estate_id: UUID) -> int | None:
        row = conn.execute(
            "SELECT version FROM estates WHERE id = ?", (str(estate_id),)
        ).fetchone()
        return row["version"] if row is not None else None

    def list_events(self, estate_id: UUID) -> list[EstateEvent]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM estate_events
            WHERE estate_id = ?
            ORDER BY estate_version, rowid
            """,
            (str(estate_id),),
        ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def list_unpublished_events(self, limit: int = 100) -> list[EstateEvent]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM estate_events
            WHERE published_at IS NULL
            ORDER BY rowid
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def mark_events_published(self, event_ids: Iterable[UUID]) -> None:
        conn = self._db.get_connection()
        now = datetime.now(UTC).isoformat()
        conn.executemany(
            "UPDATE estate_events SET published_at = ? WHERE id = ?",
            [(now, str(event_id)) for event_id in event_ids],
        )
        conn.commit()

    def _row_to_estate(self, row: sqlite3.Row) -> Estate:
        return estate_from_dict(json.loads(row["snapshot"]))

    def _row_to_event(self, row: sqlite3.Row) -> EstateEvent:
        return EstateEvent.from_dict(
            {
                "id": row["id"],
                "event_type": row["event_type"],
                "estate_id": row["estate_id"],
                "payload": json.loads(row["payload"]),
                "occurred_at": row["occurred_at"],
                "actor_id": row["actor_id"],
            }
        )
