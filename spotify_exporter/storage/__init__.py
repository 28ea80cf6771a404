"""
Storage module for spotify-exporter.

    - base: TokenStore / SnapshotStore contracts and the Snapshot records
    - diff: Track-id based collection diffing
    - tokens, snapshots: JSON file backend
    - database: SQLite backend

open_storage() picks the backend selected by the configuration.
"""

from spotify_exporter.core.config import BACKEND_SQLITE, StorageConfig
from spotify_exporter.storage.base import Snapshot, SnapshotStore, SnapshotSummary, TokenStore
from spotify_exporter.storage.database import Database
from spotify_exporter.storage.diff import Diff, compute_diff
from spotify_exporter.storage.snapshots import FileSnapshotStore, snapshot_dir_name
from spotify_exporter.storage.tokens import FileTokenStore


class Storage:
    """
    The token store and snapshot store of one configured backend.

    Attributes:
        tokens: Where the cached TokenRecord lives.
        snapshots: Where collection snapshots live.
    """

    def __init__(self, tokens: TokenStore, snapshots: SnapshotStore, database: Database | None = None) -> None:
        self.tokens = tokens
        self.snapshots = snapshots
        self._database = database

    def close(self) -> None:
        if self._database is not None:
            self._database.close()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_storage(config: StorageConfig) -> Storage:
    """
    Open the backend described by config.

    Raises:
        StorageError: If the SQLite database cannot be opened.
    """
    if config.backend == BACKEND_SQLITE:
        database = Database(config.sqlite_path)
        return Storage(database, database, database)
    return Storage(FileTokenStore(config.output_dir), FileSnapshotStore(config.output_dir))


__all__ = [
    "Storage",
    "open_storage",
    "TokenStore",
    "SnapshotStore",
    "Snapshot",
    "SnapshotSummary",
    "Diff",
    "compute_diff",
    "FileTokenStore",
    "FileSnapshotStore",
    "snapshot_dir_name",
    "Database",
]
