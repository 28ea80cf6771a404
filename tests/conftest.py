"""Test configuration and fixtures"""

import logging

import pytest
from pathlib import Path

from spotify_exporter.core.config import (
    BACKEND_FILES,
    BACKEND_SQLITE,
    ClientCredentials,
    Config,
    StorageConfig,
)
from spotify_exporter.spotify.models import Artist, TokenRecord, Track
from spotify_exporter.storage import Database, FileSnapshotStore, FileTokenStore


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Remove handlers installed by setup_logging() during a test"""
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def output_dir(tmp_path) -> Path:
    """Empty output directory for the file backend"""
    path = tmp_path / "export"
    path.mkdir()
    return path


@pytest.fixture
def file_snapshots(output_dir) -> FileSnapshotStore:
    return FileSnapshotStore(output_dir)


@pytest.fixture
def file_tokens(output_dir) -> FileTokenStore:
    return FileTokenStore(output_dir)


@pytest.fixture
def database(tmp_path):
    """SQLite backend in a temporary file"""
    db = Database(tmp_path / "spotify.db")
    yield db
    db.close()


@pytest.fixture(params=["files", "sqlite"])
def snapshot_store(request, output_dir, tmp_path):
    """Each snapshot store implementation in turn"""
    if request.param == "files":
        yield FileSnapshotStore(output_dir)
    else:
        db = Database(tmp_path / "snapshots.db")
        yield db
        db.close()


@pytest.fixture(params=["files", "sqlite"])
def token_store(request, output_dir, tmp_path):
    """Each token store implementation in turn"""
    if request.param == "files":
        yield FileTokenStore(output_dir)
    else:
        db = Database(tmp_path / "tokens.db")
        yield db
        db.close()


@pytest.fixture
def credentials() -> ClientCredentials:
    return ClientCredentials(client_id="test_client_id", client_secret="test_client_secret")


@pytest.fixture
def config(credentials, output_dir) -> Config:
    return Config(
        credentials=credentials,
        redirect_uri="http://localhost:3000",
        storage=StorageConfig(backend=BACKEND_FILES, output_dir=output_dir),
        auth_timeout=5.0,
        http_timeout=5.0,
    )


@pytest.fixture
def sqlite_config(credentials, tmp_path) -> Config:
    return Config(
        credentials=credentials,
        redirect_uri="http://localhost:3000",
        storage=StorageConfig(backend=BACKEND_SQLITE, sqlite_path=tmp_path / "spotify.db"),
    )


@pytest.fixture
def tokens() -> TokenRecord:
    return TokenRecord(access_token="access_123", refresh_token="refresh_456", expires_in=3600)


def _make_track(track_id: str, name: str | None = None, *artists: str) -> Track:
    """Build a Track with sensible defaults"""
    return Track(
        id=track_id,
        name=name or f"Song {track_id}",
        artists=tuple(Artist(name=a) for a in (artists or ("Test Artist",))),
    )


@pytest.fixture
def make_track():
    """Factory for ad-hoc tracks"""
    return _make_track


@pytest.fixture
def t1() -> Track:
    return _make_track("t1", "First Song", "Artist A")


@pytest.fixture
def t2() -> Track:
    return _make_track("t2", "Second Song", "Artist B", "Artist C")


@pytest.fixture
def t3() -> Track:
    return _make_track("t3", "Third Song", "Artist D")


@pytest.fixture
def sample_saved_item():
    """One item of the /me/tracks response"""
    return {
        'added_at': '2024-01-01T12:00:00Z',
        'track': {
            'id': 'test_track_123',
            'name': 'Test Song',
            'artists': [{'id': 'artist_123', 'name': 'Test Artist'}],
            'album': {'id': 'album_123', 'name': 'Test Album'},
            'duration_ms': 210000,
        }
    }
