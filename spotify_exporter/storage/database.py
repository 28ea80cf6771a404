"""
Thread-safe SQLite backend for spotify-exporter.

One database file holds both the token cache and every snapshot, so it
implements TokenStore and SnapshotStore at once.

Schema:
    spotify_tokens:       Single row with the cached TokenRecord
    spotify_snapshots:    One row per generation (captured_at, JSON diff)
    spotify_track_cache:  Collection rows keyed by (generation, track_id)

The generation of a new snapshot is MAX(generation) + 1, assigned in the same
BEGIN IMMEDIATE transaction that inserts its collection, so two writers
cannot claim the same number. Capture time and diff are committed afterwards
as separate units.

Usage:
    db = Database(Path("exports/spotify.db"))
    snapshot = db.write(tracks)
    db.close()
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Sequence

from spotify_exporter.core.exceptions import NotFoundError, StorageError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.models import TokenRecord, Track
from spotify_exporter.storage.base import (
    DECODE_ERRORS,
    Snapshot,
    SnapshotStore,
    SnapshotSummary,
    TokenStore,
)
from spotify_exporter.storage.diff import Diff


logger = get_logger(__name__)


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS spotify_tokens (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    access_token TEXT NOT NULL,
    refresh_token TEXT NOT NULL,
    expires_in INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS spotify_snapshots (
    generation INTEGER PRIMARY KEY,
    captured_at TEXT,
    diff TEXT  -- JSON {"added": [...], "removed": [...]}
);

CREATE TABLE IF NOT EXISTS spotify_track_cache (
    generation INTEGER NOT NULL,
    track_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    artists TEXT NOT NULL,  -- JSON array of {"name": ...}
    PRIMARY KEY (generation, track_id),
    FOREIGN KEY (generation) REFERENCES spotify_snapshots(generation) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_track_cache_position ON spotify_track_cache(generation, position);
"""


class Database(TokenStore, SnapshotStore):
    """
    SQLite implementation of both storage contracts.

    Uses a single persistent connection in autocommit mode with explicit
    transactions. All public methods acquire self._lock before touching it.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise StorageError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise StorageError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield the persistent connection, opening it on first use."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                isolation_level=None,  # transactions are explicit
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Run the body inside BEGIN/COMMIT, rolling back on any exception.

        Must be entered with self._lock held.
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise StorageError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )

    def _storage_error(self, action: str, e: sqlite3.Error, **details) -> StorageError:
        return StorageError(
            f"Failed to {action}: {e}",
            details={"path": str(self.db_path), "original_error": str(e), **details}
        )

    # =========================================================================
    # Tokens
    # =========================================================================

    def get_cached(self) -> TokenRecord | None:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    row = conn.execute(
                        "SELECT access_token, refresh_token, expires_in FROM spotify_tokens WHERE id = 1"
                    ).fetchone()
            except sqlite3.Error as e:
                raise self._storage_error("read cached tokens", e) from e

        if row is None:
            return None
        try:
            return TokenRecord.from_dict(dict(row))
        except ValueError as e:
            raise StorageError(
                f"Cached token row is malformed: {e}",
                details={"path": str(self.db_path)}
            ) from e

    def put(self, tokens: TokenRecord) -> None:
        with self._lock:
            try:
                with self._transaction() as conn:
                    conn.execute("DELETE FROM spotify_tokens")
                    conn.execute(
                        "INSERT INTO spotify_tokens (id, access_token, refresh_token, expires_in) "
                        "VALUES (1, ?, ?, ?)",
                        (tokens.access_token, tokens.refresh_token, tokens.expires_in)
                    )
            except sqlite3.Error as e:
                raise self._storage_error("save tokens", e) from e
        logger.debug(f"Tokens saved to {self.db_path}")

    def clear(self) -> bool:
        with self._lock:
            try:
                with self._transaction() as conn:
                    cursor = conn.execute("DELETE FROM spotify_tokens")
            except sqlite3.Error as e:
                raise self._storage_error("clear cached tokens", e) from e
        return cursor.rowcount > 0

    # =========================================================================
    # Snapshots
    # =========================================================================

    def latest_generation(self) -> int | None:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    row = conn.execute("SELECT MAX(generation) FROM spotify_snapshots").fetchone()
            except sqlite3.Error as e:
                raise self._storage_error("read latest generation", e) from e
        return row[0]

    def _insert_collection(self, tracks: Sequence[Track]) -> tuple[int | None, int]:
        """
        Claim the next generation and store its collection.

        Returns:
            (previous generation or None, new generation)
        """
        with self._lock:
            try:
                with self._transaction(immediate=True) as conn:
                    previous = conn.execute("SELECT MAX(generation) FROM spotify_snapshots").fetchone()[0]
                    generation = (previous or 0) + 1
                    conn.execute("INSERT INTO spotify_snapshots (generation) VALUES (?)", (generation,))
                    # A repeated id keeps its first position and its last fields
                    conn.executemany(
                        """
                        INSERT INTO spotify_track_cache (generation, track_id, position, name, artists)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT (generation, track_id)
                        DO UPDATE SET name = excluded.name, artists = excluded.artists
                        """,
                        [
                            (
                                generation,
                                track.id,
                                position,
                                track.name,
                                json.dumps([a.to_dict() for a in track.artists], ensure_ascii=False),
                            )
                            for position, track in enumerate(tracks)
                        ]
                    )
            except sqlite3.Error as e:
                raise self._storage_error("write snapshot collection", e) from e
        return previous, generation

    def _update_snapshot(self, generation: int, column: str, value: str) -> None:
        with self._lock:
            try:
                with self._transaction() as conn:
                    conn.execute(
                        f"UPDATE spotify_snapshots SET {column} = ? WHERE generation = ?",
                        (value, generation)
                    )
            except sqlite3.Error as e:
                raise self._storage_error(f"write snapshot {column}", e, generation=generation) from e

    def write(self, tracks: Sequence[Track]) -> Snapshot:
        tracks = tuple(tracks)
        previous, generation = self._insert_collection(tracks)

        captured_at = datetime.now(timezone.utc)
        self._update_snapshot(generation, "captured_at", captured_at.isoformat())

        diff = self._diff_against(previous, tracks)
        if diff is not None:
            self._update_snapshot(generation, "diff", json.dumps(diff.to_dict(), ensure_ascii=False))

        logger.debug(f"Snapshot {generation} written to {self.db_path}")
        return Snapshot(generation=generation, captured_at=captured_at, tracks=tracks, diff=diff)

    def _snapshot_row(self, conn: sqlite3.Connection, generation: int) -> sqlite3.Row:
        row = conn.execute(
            "SELECT generation, captured_at, diff FROM spotify_snapshots WHERE generation = ?",
            (generation,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Snapshot {generation} does not exist", generation)
        return row

    def read(self, generation: int) -> list[Track]:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    self._snapshot_row(conn, generation)
                    rows = conn.execute(
                        "SELECT track_id, name, artists FROM spotify_track_cache "
                        "WHERE generation = ? ORDER BY position",
                        (generation,)
                    ).fetchall()
            except sqlite3.Error as e:
                raise self._storage_error("read snapshot collection", e, generation=generation) from e

        try:
            return [
                Track.from_dict({
                    "id": row["track_id"],
                    "name": row["name"],
                    "artists": json.loads(row["artists"]),
                })
                for row in rows
            ]
        except DECODE_ERRORS as e:
            raise StorageError(
                f"Collection of snapshot {generation} is malformed: {e}",
                details={"path": str(self.db_path), "generation": generation}
            ) from e

    def read_diff(self, generation: int) -> Diff | None:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    row = self._snapshot_row(conn, generation)
            except sqlite3.Error as e:
                raise self._storage_error("read snapshot diff", e, generation=generation) from e

        if row["diff"] is None:
            return None
        try:
            return Diff.from_dict(json.loads(row["diff"]))
        except DECODE_ERRORS as e:
            raise StorageError(
                f"Diff of snapshot {generation} is malformed: {e}",
                details={"path": str(self.db_path), "generation": generation}
            ) from e

    def list_snapshots(self) -> list[SnapshotSummary]:
        with self._lock:
            try:
                with self._get_connection() as conn:
                    rows = conn.execute(
                        """
                        SELECT s.generation, s.captured_at, s.diff, COUNT(t.track_id) AS track_count
                        FROM spotify_snapshots s
                        LEFT JOIN spotify_track_cache t ON t.generation = s.generation
                        GROUP BY s.generation
                        ORDER BY s.generation
                        """
                    ).fetchall()
            except sqlite3.Error as e:
                raise self._storage_error("list snapshots", e) from e

        summaries = []
        for row in rows:
            captured_at = None
            if row["captured_at"]:
                try:
                    captured_at = datetime.fromisoformat(row["captured_at"])
                except ValueError:
                    logger.warning(f"Snapshot {row['generation']} has a malformed capture time")

            added = removed = None
            if row["diff"]:
                try:
                    diff = json.loads(row["diff"])
                    added = len(diff.get("added") or [])
                    removed = len(diff.get("removed") or [])
                except DECODE_ERRORS:
                    logger.warning(f"Snapshot {row['generation']} has a malformed diff")

            summaries.append(SnapshotSummary(
                generation=row["generation"],
                captured_at=captured_at,
                track_count=row["track_count"],
                added=added,
                removed=removed,
            ))
        return summaries
