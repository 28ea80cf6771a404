"""
Storage contracts shared by the JSON-file and SQLite backends.

TokenStore:
    Holds the single cached TokenRecord. put() replaces it wholesale.

SnapshotStore:
    Assigns generation numbers 1, 2, 3, ... (max existing + 1, never reused),
    persists each collection with its capture metadata and, when the previous
    generation's collection is still readable, a diff against it.

Both contracts are implemented by:
    - spotify_exporter.storage.tokens.FileTokenStore
    - spotify_exporter.storage.snapshots.FileSnapshotStore
    - spotify_exporter.storage.database.Database (both at once)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from spotify_exporter.core.exceptions import NotFoundError, StorageError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.models import TokenRecord, Track
from spotify_exporter.storage.diff import Diff, compute_diff


logger = get_logger(__name__)


# Raised by from_dict() on structurally wrong persisted data
DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


@dataclass(frozen=True)
class Snapshot:
    """
    A persisted capture of the saved-track collection.

    Attributes:
        generation: Positive, strictly increasing snapshot number.
        captured_at: Timezone-aware capture time.
        tracks: The collection as written.
        diff: Changes against generation - 1, or None for the first snapshot
              or when the previous collection could not be read.
    """
    generation: int
    captured_at: datetime
    tracks: tuple[Track, ...]
    diff: Diff | None = None


@dataclass(frozen=True)
class SnapshotSummary:
    """
    One line of `list-snapshots` output.

    captured_at, added and removed are None when the corresponding
    artifact is missing (a partially written snapshot).
    """
    generation: int
    captured_at: datetime | None
    track_count: int
    added: int | None = None
    removed: int | None = None


class TokenStore(ABC):
    """Persistent holder of the single active TokenRecord."""

    @abstractmethod
    def get_cached(self) -> TokenRecord | None:
        """
        Return the cached record, or None if none was ever written.

        Raises:
            StorageError: If a record exists but cannot be read or decoded.
        """

    @abstractmethod
    def put(self, tokens: TokenRecord) -> None:
        """
        Replace the cached record with tokens.

        Readers observe either the old record or the new one, never both
        and never neither.

        Raises:
            StorageError: If the record cannot be written.
        """

    @abstractmethod
    def clear(self) -> bool:
        """Delete the cached record. Returns True if one existed."""


class SnapshotStore(ABC):
    """Generation-numbered store of collection snapshots."""

    @abstractmethod
    def write(self, tracks: Sequence[Track]) -> Snapshot:
        """
        Persist tracks as generation latest_generation() + 1.

        The collection is persisted first; metadata and diff follow as
        independent units. A failure after the collection was written raises
        StorageError but leaves a readable snapshot behind.

        Returns:
            The Snapshot as written, including its diff (if any).
        """

    @abstractmethod
    def read(self, generation: int) -> list[Track]:
        """
        Return the collection stored at generation.

        Raises:
            NotFoundError: If no collection exists at that generation.
            StorageError: If it exists but cannot be decoded.
        """

    @abstractmethod
    def latest_generation(self) -> int | None:
        """Highest existing generation, or None if the store is empty."""

    @abstractmethod
    def read_diff(self, generation: int) -> Diff | None:
        """
        Return the diff stored with generation, or None if it has none.

        Raises:
            NotFoundError: If the generation does not exist.
        """

    @abstractmethod
    def list_snapshots(self) -> list[SnapshotSummary]:
        """Summaries of all generations, oldest first."""

    def _diff_against(self, previous: int | None, tracks: Sequence[Track]) -> Diff | None:
        """
        Diff tracks against the collection of generation previous.

        Returns None when there is no previous generation, or when its
        collection can no longer be read; the new snapshot is written
        without a diff in that case.
        """
        if previous is None:
            return None
        try:
            old_tracks = self.read(previous)
        except (NotFoundError, StorageError) as e:
            logger.warning(
                f"Previous snapshot {previous} is not readable ({e.message}); "
                f"writing the new snapshot without a diff"
            )
            return None
        return compute_diff(old_tracks, tracks)
