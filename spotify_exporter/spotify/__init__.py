"""
Spotify module for spotify-exporter.

Contains the data models shared by every layer and the API client used for
the token exchange and the saved-tracks fetch.
"""

from spotify_exporter.spotify.client import (
    AUTHORIZE_ENDPOINT,
    SAVED_TRACKS_SCOPE,
    TOKEN_ENDPOINT,
    SpotifyClient,
)
from spotify_exporter.spotify.models import Artist, TokenRecord, Track

__all__ = [
    "AUTHORIZE_ENDPOINT",
    "SAVED_TRACKS_SCOPE",
    "TOKEN_ENDPOINT",
    "SpotifyClient",
    "Artist",
    "Track",
    "TokenRecord",
]
