"""
Configuration management for spotify-exporter.

This module loads, validates, and provides access to the application
configuration. Settings come from three sources, in increasing precedence:

    1. Built-in defaults
    2. An optional config.yaml (current directory, or an explicit path)
    3. Environment variables (a .env file in the current directory is
       loaded first via python-dotenv)

Environment Variables:
    CLIENT_ID       Spotify application client ID (required)
    CLIENT_SECRET   Spotify application client secret (required)
    REDIRECT_URI    OAuth redirect URI (default: http://localhost:3000)
    OUTPUT_DIR      Directory for JSON snapshots (file backend)
    SQLITE_URL      SQLite database location (database backend)
    AUTH_TIMEOUT    Seconds to wait for the authorization callback (0 = forever)
    HTTP_TIMEOUT    Seconds before an HTTP request to Spotify times out

Exactly one of OUTPUT_DIR / SQLITE_URL must be given.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://localhost:3000"

    output:
      directory: "~/Backups/Spotify"
      # or: sqlite_url: "sqlite:~/Backups/spotify.db"

    auth:
      timeout: 300

    network:
      timeout: 30
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml
from dotenv import find_dotenv, load_dotenv

from spotify_exporter.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://localhost:3000"
DEFAULT_AUTH_TIMEOUT = 300.0
DEFAULT_HTTP_TIMEOUT = 30.0

BACKEND_FILES = "files"
BACKEND_SQLITE = "sqlite"


@dataclass(frozen=True)
class ClientCredentials:
    """
    Spotify application credentials.

    Obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
    """
    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"ClientCredentials(client_id={self.client_id!r}, client_secret='***')"


@dataclass(frozen=True)
class StorageConfig:
    """
    Where snapshots and the token cache live.

    Attributes:
        backend: BACKEND_FILES or BACKEND_SQLITE.
        output_dir: Root directory for the file backend, None otherwise.
        sqlite_path: Database file for the SQLite backend, None otherwise.
    """
    backend: str
    output_dir: Path | None = None
    sqlite_path: Path | None = None

    @property
    def log_dir(self) -> Path:
        """Directory for per-run log files."""
        if self.output_dir is not None:
            return self.output_dir / "logs"
        return self.sqlite_path.parent / "logs"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Attributes:
        credentials: Spotify client credentials.
        redirect_uri: Redirect URI registered in the Spotify app settings.
                      Its host and port are where the callback server listens.
        storage: Storage backend selection.
        auth_timeout: Seconds to wait for the authorization callback,
                      or None to wait until the process is killed.
        http_timeout: Seconds before a request to Spotify times out.
    """
    credentials: ClientCredentials
    redirect_uri: str
    storage: StorageConfig
    auth_timeout: float | None = DEFAULT_AUTH_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to a YAML config file. It must
                     exist when given. If None, config.yaml in the current
                     working directory is used when present.
        environ: Mapping to read variables from. Defaults to os.environ
                 after loading a .env file; tests pass a plain dict.

    Returns:
        Config: A frozen dataclass with all settings resolved.

    Raises:
        ConfigError: If the YAML file is unreadable or invalid, if a required
                     credential or storage location is missing, or if a value
                     is invalid. The message names the offending setting.

    Side Effects:
        Creates the output directory for the file backend if it is missing.
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    raw = _read_yaml(config_path)
    spotify_section = _section(raw, "spotify")
    output_section = _section(raw, "output")

    client_id = _pick(environ, "CLIENT_ID", spotify_section, "client_id")
    client_secret = _pick(environ, "CLIENT_SECRET", spotify_section, "client_secret")
    if not client_id:
        raise ConfigError(
            "please provide Spotify CLIENT_ID",
            details={"field": "CLIENT_ID"}
        )
    if not client_secret:
        raise ConfigError(
            "please provide Spotify CLIENT_SECRET",
            details={"field": "CLIENT_SECRET"}
        )

    redirect_uri = (
        _pick(environ, "REDIRECT_URI", spotify_section, "redirect_uri")
        or DEFAULT_REDIRECT_URI
    )
    _validate_redirect_uri(redirect_uri)

    storage = _parse_storage(
        _pick(environ, "OUTPUT_DIR", output_section, "directory"),
        _pick(environ, "SQLITE_URL", output_section, "sqlite_url"),
    )

    auth_timeout = _parse_timeout(
        _pick(environ, "AUTH_TIMEOUT", _section(raw, "auth"), "timeout"),
        "AUTH_TIMEOUT",
        DEFAULT_AUTH_TIMEOUT,
        allow_unbounded=True,
    )
    http_timeout = _parse_timeout(
        _pick(environ, "HTTP_TIMEOUT", _section(raw, "network"), "timeout"),
        "HTTP_TIMEOUT",
        DEFAULT_HTTP_TIMEOUT,
    )

    return Config(
        credentials=ClientCredentials(client_id=client_id, client_secret=client_secret),
        redirect_uri=redirect_uri,
        storage=storage,
        auth_timeout=auth_timeout,
        http_timeout=http_timeout,
    )


def parse_sqlite_url(url: str) -> Path:
    """
    Turn a SQLite connection string into a filesystem path.

    Accepted forms: "sqlite:data.db", "sqlite:///abs/data.db",
    "sqlite://rel/data.db" and a bare path. "~" is expanded.

    Raises:
        ConfigError: If the URL names an in-memory database or is empty.
    """
    value = url.strip()
    if value.startswith("sqlite:"):
        value = value[len("sqlite:"):]
        if value.startswith("///"):
            value = "/" + value[3:]
        elif value.startswith("//"):
            value = value[2:]
    if not value or value == ":memory:":
        raise ConfigError(
            f"SQLITE_URL must point at a database file: {url!r}",
            details={"field": "SQLITE_URL"}
        )
    return Path(value).expanduser().resolve()


def _read_yaml(config_path: Path | None) -> dict[str, Any]:
    if config_path is None:
        default_path = Path.cwd() / CONFIG_FILENAME
        if not default_path.exists():
            return {}
        config_path = default_path
    elif not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )
    return raw


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _pick(
    environ: Mapping[str, str],
    env_name: str,
    section: dict[str, Any],
    key: str
) -> str | None:
    """Return the environment value if set, else the YAML value, stripped."""
    value = environ.get(env_name)
    if value is None or not str(value).strip():
        value = section.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _validate_redirect_uri(redirect_uri: str) -> None:
    parsed = urlparse(redirect_uri)
    if parsed.scheme != "http" or not parsed.hostname:
        raise ConfigError(
            f"REDIRECT_URI must be a local http:// URL, got {redirect_uri!r}",
            details={"field": "REDIRECT_URI"}
        )
    try:
        parsed.port
    except ValueError as e:
        raise ConfigError(
            f"REDIRECT_URI has an invalid port: {redirect_uri!r}",
            details={"field": "REDIRECT_URI"}
        ) from e


def _parse_storage(output_dir: str | None, sqlite_url: str | None) -> StorageConfig:
    if output_dir and sqlite_url:
        raise ConfigError(
            "Set either OUTPUT_DIR or SQLITE_URL, not both",
            details={"fields": ["OUTPUT_DIR", "SQLITE_URL"]}
        )

    if sqlite_url:
        path = parse_sqlite_url(sqlite_url)
        if path.exists() and path.is_dir():
            raise ConfigError(
                f"SQLITE_URL points at a directory: {path}",
                details={"field": "SQLITE_URL", "path": str(path)}
            )
        return StorageConfig(backend=BACKEND_SQLITE, sqlite_path=path)

    if not output_dir:
        raise ConfigError(
            "please provide OUTPUT_DIR (or SQLITE_URL)",
            details={"field": "OUTPUT_DIR"}
        )

    path = Path(output_dir).expanduser().resolve()
    if not path.exists():
        try:
            path.mkdir(parents=True)
        except OSError as e:
            raise ConfigError(
                f"failed to create OUTPUT_DIR {path}: {e}",
                details={"field": "OUTPUT_DIR", "path": str(path)}
            ) from e
    if not path.is_dir():
        raise ConfigError(
            f"given path for OUTPUT_DIR is not a directory: {path}",
            details={"field": "OUTPUT_DIR", "path": str(path)}
        )
    return StorageConfig(backend=BACKEND_FILES, output_dir=path)


def _parse_timeout(
    raw: str | None,
    name: str,
    default: float,
    allow_unbounded: bool = False
) -> float | None:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(
            f"'{name}' must be a number of seconds, got {raw!r}",
            details={"field": name, "value": raw}
        ) from e
    if value == 0 and allow_unbounded:
        return None
    if value <= 0:
        raise ConfigError(
            f"'{name}' must be a positive number of seconds",
            details={"field": name, "value": raw}
        )
    return value
