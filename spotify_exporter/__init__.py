"""
spotify-exporter - Back up the Spotify saved-tracks collection.

Each run captures the account's "Liked Songs" as a numbered snapshot
(generation 1, 2, 3, ...) and stores the tracks added and removed since the
previous generation. Snapshots live either in a directory of JSON files or
in a SQLite database.

Package layout:
    - core: exceptions, configuration, logging
    - auth: local callback server and browser authorization flow
    - spotify: data models and the Spotify API client
    - storage: token cache, snapshot stores and diffing
    - cli: the `spotify-exporter` command
"""

__version__ = "0.1.0"
__author__ = "spotify-exporter contributors"
