"""
Data models for Spotify entities.

This module defines immutable dataclasses for the values that flow between
the Spotify API, the token cache and the snapshot store.

Design Decisions:
    - All dataclasses are frozen (immutable)
    - Sequences are stored as tuples for immutability and hashing
    - Each model owns its serialization boundary (from_* / to_dict), so the
      API response, the JSON files and the database rows share one type
    - Only the fields a backup needs are kept; the rest of the API payload
      is dropped on purpose

Usage:
    from spotify_exporter.spotify.models import Track, TokenRecord

    track = Track.from_spotify_api(saved_item)
    record = TokenRecord.from_dict(response.json())
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Artist:
    """
    A Spotify artist as recorded in a snapshot.

    Attributes:
        name: The artist's display name.
              Example: "Van Halen"
    """
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Artist":
        return cls(name=str(data["name"]))


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of one saved track.

    Identity is the Spotify track id; two tracks with the same id are the
    same track for diffing purposes even if their names differ.

    Attributes:
        id: Unique Spotify track ID (22-character base62 string).
            Example: "4cOdK2wGLETKBW3PvgPWqT"
        name: Track title as it appears on Spotify.
              Example: "Ain't Talkin' 'Bout Love"
        artists: Contributing artists, in Spotify's order.

    Example:
        track = Track(
            id="abc123",
            name="Bringin' On the Heartbreak",
            artists=(Artist("Def Leppard"),)
        )
        print(track.artist_names)  # "Def Leppard"
    """
    id: str
    name: str
    artists: tuple[Artist, ...] = field(default_factory=tuple)

    @property
    def artist_names(self) -> str:
        """All artist names joined with a comma."""
        return ", ".join(artist.name for artist in self.artists)

    @classmethod
    def from_spotify_api(cls, item: dict[str, Any]) -> "Track":
        """
        Create a Track from a Spotify API object.

        Accepts either a saved-track item as returned by /me/tracks
        ({"added_at": ..., "track": {...}}) or a bare track object.

        Args:
            item: The API payload.

        Returns:
            Track with id, name and artist names.

        Raises:
            ValueError: If the payload has no track or the track has no id
                        (local files and unavailable tracks).
        """
        track_data = item["track"] if "track" in item else item
        if not track_data or not track_data.get("id"):
            raise ValueError("Spotify item has no track id")

        return cls(
            id=track_data["id"],
            name=track_data.get("name") or "",
            artists=tuple(
                Artist(name=artist.get("name") or "")
                for artist in track_data.get("artists") or []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the JSON shape stored in snapshot files.

        Returns:
            {"id": ..., "name": ..., "artists": [{"name": ...}, ...]}
        """
        return {
            "id": self.id,
            "name": self.name,
            "artists": [artist.to_dict() for artist in self.artists],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        """
        Reconstruct a Track from to_dict() output.

        Raises:
            KeyError: If "id" or "name" is missing.
            TypeError: If data is not a mapping.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            artists=tuple(Artist.from_dict(a) for a in data.get("artists") or []),
        )


@dataclass(frozen=True)
class TokenRecord:
    """
    Access and refresh tokens issued by the Spotify token endpoint.

    This single type is used for the token endpoint response, the JSON token
    cache and the database row. It is replaced wholesale whenever new tokens
    are obtained.

    Attributes:
        access_token: Bearer token for Web API calls.
        refresh_token: Token that could be used to obtain a new access token.
                       Stored but never used: tokens are not refreshed.
        expires_in: Lifetime of the access token in seconds at issue time.
    """
    access_token: str
    refresh_token: str
    expires_in: int

    def __repr__(self) -> str:
        return f"TokenRecord(access_token='***', refresh_token='***', expires_in={self.expires_in})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TokenRecord":
        """
        Validate and build a TokenRecord from a decoded JSON object.

        Extra keys (token_type, scope, ...) are ignored.

        Raises:
            ValueError: If data is not an object, a token is missing or not a
                        non-empty string, or expires_in is not an integer.
        """
        if not isinstance(data, dict):
            raise ValueError("token payload must be a JSON object")

        for key in ("access_token", "refresh_token"):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ValueError(f"token payload has no valid '{key}'")

        expires_in = data.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int):
            raise ValueError("token payload has no integer 'expires_in'")

        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=expires_in,
        )
