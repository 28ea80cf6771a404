"""
File-based snapshot store.

Layout under the output directory:

    snapshot-000001/collection.json
    snapshot-000001/metadata.json
    snapshot-000002/collection.json
    snapshot-000002/metadata.json
    snapshot-000002/diff.json

The directory listing is the index: the latest generation is the largest
well-formed snapshot-NNNNNN directory. Other entries (cache/, logs/) are
left alone.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from spotify_exporter.core.exceptions import NotFoundError, StorageError
from spotify_exporter.core.logger import get_logger
from spotify_exporter.spotify.models import Track
from spotify_exporter.storage.base import DECODE_ERRORS, Snapshot, SnapshotStore, SnapshotSummary
from spotify_exporter.storage.diff import Diff
from spotify_exporter.storage.jsonfile import read_json, write_json_atomic


logger = get_logger(__name__)


SNAPSHOT_DIR_PREFIX = "snapshot-"
COLLECTION_FILENAME = "collection.json"
METADATA_FILENAME = "metadata.json"
DIFF_FILENAME = "diff.json"

_SNAPSHOT_DIR_RE = re.compile(r"^snapshot-(\d{6,})$")


def snapshot_dir_name(generation: int) -> str:
    """Directory name for a generation, e.g. 7 -> "snapshot-000007"."""
    return f"{SNAPSHOT_DIR_PREFIX}{generation:06d}"


class FileSnapshotStore(SnapshotStore):
    """
    SnapshotStore backed by one directory per generation.

    Attributes:
        root: Output directory holding the snapshot-NNNNNN directories.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _generation_dir(self, generation: int) -> Path:
        return self.root / snapshot_dir_name(generation)

    def _generations(self) -> list[int]:
        """All well-formed generation numbers on disk, ascending."""
        try:
            entries = list(self.root.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(
                f"Failed to list output directory: {e}",
                details={"path": str(self.root)}
            ) from e

        generations = []
        for entry in entries:
            if not entry.name.startswith(SNAPSHOT_DIR_PREFIX):
                continue
            match = _SNAPSHOT_DIR_RE.match(entry.name)
            # Padded to six digits, never beyond
            if match is None or entry.name != snapshot_dir_name(int(match.group(1))):
                logger.warning(f"Skipping malformed snapshot entry: {entry.name}")
                continue
            if not entry.is_dir():
                logger.warning(f"Skipping snapshot entry that is not a directory: {entry.name}")
                continue
            generations.append(int(match.group(1)))

        return sorted(generations)

    def latest_generation(self) -> int | None:
        generations = self._generations()
        return generations[-1] if generations else None

    def write(self, tracks: Sequence[Track]) -> Snapshot:
        tracks = tuple(tracks)
        previous = self.latest_generation()
        generation = (previous or 0) + 1
        directory = self._generation_dir(generation)

        try:
            directory.mkdir(parents=True)
        except FileExistsError as e:
            raise StorageError(
                f"Snapshot {generation} already exists",
                details={"path": str(directory), "generation": generation}
            ) from e
        except OSError as e:
            raise StorageError(
                f"Failed to create snapshot directory: {e}",
                details={"path": str(directory), "generation": generation}
            ) from e

        write_json_atomic(directory / COLLECTION_FILENAME, [t.to_dict() for t in tracks])

        captured_at = datetime.now(timezone.utc)
        write_json_atomic(
            directory / METADATA_FILENAME,
            {"captured_at": captured_at.isoformat(), "track_count": len(tracks)},
        )

        diff = self._diff_against(previous, tracks)
        if diff is not None:
            write_json_atomic(directory / DIFF_FILENAME, diff.to_dict())

        logger.debug(f"Snapshot {generation} written to {directory}")
        return Snapshot(generation=generation, captured_at=captured_at, tracks=tracks, diff=diff)

    def read(self, generation: int) -> list[Track]:
        path = self._generation_dir(generation) / COLLECTION_FILENAME
        try:
            data = read_json(path)
        except FileNotFoundError:
            raise NotFoundError(f"Snapshot {generation} has no collection", generation)

        try:
            return [Track.from_dict(item) for item in data]
        except DECODE_ERRORS as e:
            raise StorageError(
                f"Collection of snapshot {generation} is malformed: {e}",
                details={"path": str(path), "generation": generation}
            ) from e

    def read_diff(self, generation: int) -> Diff | None:
        directory = self._generation_dir(generation)
        if not directory.is_dir():
            raise NotFoundError(f"Snapshot {generation} does not exist", generation)

        path = directory / DIFF_FILENAME
        try:
            data = read_json(path)
        except FileNotFoundError:
            return None

        try:
            return Diff.from_dict(data)
        except DECODE_ERRORS as e:
            raise StorageError(
                f"Diff of snapshot {generation} is malformed: {e}",
                details={"path": str(path), "generation": generation}
            ) from e

    def _read_optional(self, path: Path) -> Any:
        """Best-effort read for listings: None when missing or unreadable."""
        try:
            return read_json(path)
        except FileNotFoundError:
            return None
        except StorageError as e:
            logger.warning(e.message)
            return None

    def list_snapshots(self) -> list[SnapshotSummary]:
        summaries = []
        for generation in self._generations():
            directory = self._generation_dir(generation)

            captured_at = None
            track_count = None
            metadata = self._read_optional(directory / METADATA_FILENAME)
            if isinstance(metadata, dict):
                try:
                    captured_at = datetime.fromisoformat(metadata["captured_at"])
                except DECODE_ERRORS:
                    logger.warning(f"Snapshot {generation} has a malformed capture time")
                try:
                    track_count = int(metadata["track_count"])
                except DECODE_ERRORS:
                    logger.warning(f"Snapshot {generation} has a malformed track count")

            if track_count is None:
                collection = self._read_optional(directory / COLLECTION_FILENAME)
                track_count = len(collection) if isinstance(collection, list) else 0

            added = removed = None
            diff = self._read_optional(directory / DIFF_FILENAME)
            if isinstance(diff, dict):
                added = len(diff.get("added") or [])
                removed = len(diff.get("removed") or [])

            summaries.append(SnapshotSummary(
                generation=generation,
                captured_at=captured_at,
                track_count=track_count,
                added=added,
                removed=removed,
            ))
        return summaries
