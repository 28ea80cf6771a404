"""
Collection diffing by stable track id.

Only identity matters: a track whose name or artists changed between two
snapshots but kept its id is neither added nor removed.
"""

from dataclasses import dataclass
from typing import Any, Iterable

from spotify_exporter.spotify.models import Track


@dataclass(frozen=True)
class Diff:
    """
    Tracks added to and removed from a collection between two snapshots.

    Attributes:
        added: Tracks in the new collection whose id is not in the old one,
               in the new collection's order.
        removed: Tracks in the old collection whose id is not in the new one,
                 in the old collection's order.
    """
    added: tuple[Track, ...] = ()
    removed: tuple[Track, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": [track.to_dict() for track in self.added],
            "removed": [track.to_dict() for track in self.removed],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Diff":
        return cls(
            added=tuple(Track.from_dict(t) for t in data.get("added") or []),
            removed=tuple(Track.from_dict(t) for t in data.get("removed") or []),
        )


def _missing_from(source: Iterable[Track], other_ids: set[str]) -> tuple[Track, ...]:
    """
    Tracks of source whose id is not in other_ids, one per id.

    A repeated id keeps the position of its first occurrence and the fields
    of its last one.
    """
    picked: dict[str, Track] = {}
    for track in source:
        if track.id not in other_ids:
            picked[track.id] = track
    return tuple(picked.values())


def compute_diff(old: Iterable[Track], new: Iterable[Track]) -> Diff:
    """
    Compute the symmetric difference of two collections by track id.

    Args:
        old: Collection of the previous snapshot.
        new: Collection of the snapshot being written.

    Returns:
        Diff whose added/removed id sets are disjoint and, together with the
        ids common to both inputs, cover every id of either input exactly once.

    Example:
        compute_diff([t1, t2], [t2, t3])  # Diff(added=(t3,), removed=(t1,))
    """
    old = list(old)
    new = list(new)
    old_ids = {track.id for track in old}
    new_ids = {track.id for track in new}

    return Diff(
        added=_missing_from(new, old_ids),
        removed=_missing_from(old, new_ids),
    )
