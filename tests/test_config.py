"""Test configuration loading"""

import os
from pathlib import Path

import pytest

from spotify_exporter.core.config import (
    BACKEND_FILES,
    BACKEND_SQLITE,
    DEFAULT_AUTH_TIMEOUT,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_REDIRECT_URI,
    load_config,
    parse_sqlite_url,
)
from spotify_exporter.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test in an empty directory so no config.yaml is picked up"""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def env(tmp_path):
    return {
        "CLIENT_ID": "id_from_env",
        "CLIENT_SECRET": "secret_from_env",
        "OUTPUT_DIR": str(tmp_path / "out"),
    }


class TestLoadConfig:
    """Test load_config() with explicit environments"""

    def test_minimal_environment(self, env, tmp_path):
        config = load_config(environ=env)

        assert config.credentials.client_id == "id_from_env"
        assert config.credentials.client_secret == "secret_from_env"
        assert config.redirect_uri == DEFAULT_REDIRECT_URI
        assert config.storage.backend == BACKEND_FILES
        assert config.storage.output_dir == (tmp_path / "out").resolve()
        assert config.auth_timeout == DEFAULT_AUTH_TIMEOUT
        assert config.http_timeout == DEFAULT_HTTP_TIMEOUT

    def test_creates_output_dir(self, env, tmp_path):
        load_config(environ=env)

        assert (tmp_path / "out").is_dir()

    def test_output_dir_is_a_file(self, env, tmp_path):
        (tmp_path / "out").write_text("not a directory")

        with pytest.raises(ConfigError, match="not a directory"):
            load_config(environ=env)

    @pytest.mark.parametrize("missing", ["CLIENT_ID", "CLIENT_SECRET"])
    def test_missing_credentials(self, env, missing):
        del env[missing]

        with pytest.raises(ConfigError, match=missing):
            load_config(environ=env)

    def test_blank_credential_counts_as_missing(self, env):
        env["CLIENT_ID"] = "   "

        with pytest.raises(ConfigError, match="CLIENT_ID"):
            load_config(environ=env)

    def test_sqlite_backend(self, env, tmp_path):
        del env["OUTPUT_DIR"]
        env["SQLITE_URL"] = f"sqlite://{tmp_path}/spotify.db"

        config = load_config(environ=env)

        assert config.storage.backend == BACKEND_SQLITE
        assert config.storage.sqlite_path == (tmp_path / "spotify.db").resolve()
        assert config.storage.log_dir == (tmp_path / "logs").resolve()

    def test_both_locations(self, env, tmp_path):
        env["SQLITE_URL"] = str(tmp_path / "spotify.db")

        with pytest.raises(ConfigError, match="not both"):
            load_config(environ=env)

    def test_no_location(self, env):
        del env["OUTPUT_DIR"]

        with pytest.raises(ConfigError, match="OUTPUT_DIR"):
            load_config(environ=env)

    def test_timeouts(self, env):
        env["AUTH_TIMEOUT"] = "0"
        env["HTTP_TIMEOUT"] = "12.5"

        config = load_config(environ=env)

        assert config.auth_timeout is None
        assert config.http_timeout == 12.5

    @pytest.mark.parametrize("name,value", [
        ("AUTH_TIMEOUT", "soon"),
        ("AUTH_TIMEOUT", "-1"),
        ("HTTP_TIMEOUT", "0"),
    ])
    def test_invalid_timeouts(self, env, name, value):
        env[name] = value

        with pytest.raises(ConfigError, match=name):
            load_config(environ=env)

    @pytest.mark.parametrize("uri", ["https://localhost:3000", "localhost:3000", "http://"])
    def test_invalid_redirect_uri(self, env, uri):
        env["REDIRECT_URI"] = uri

        with pytest.raises(ConfigError, match="REDIRECT_URI"):
            load_config(environ=env)

    def test_credentials_repr_hides_secret(self, env):
        config = load_config(environ=env)

        assert "secret_from_env" not in repr(config.credentials)


class TestYamlConfig:
    """Test config.yaml handling"""

    def test_yaml_values(self, isolated_cwd, tmp_path):
        (isolated_cwd / "config.yaml").write_text(
            "spotify:\n"
            "  client_id: yaml_id\n"
            "  client_secret: yaml_secret\n"
            "  redirect_uri: http://127.0.0.1:8888/callback\n"
            "output:\n"
            f"  directory: {tmp_path / 'yaml_out'}\n"
            "auth:\n"
            "  timeout: 60\n"
            "network:\n"
            "  timeout: 10\n"
        )

        config = load_config(environ={})

        assert config.credentials.client_id == "yaml_id"
        assert config.redirect_uri == "http://127.0.0.1:8888/callback"
        assert config.storage.output_dir == (tmp_path / "yaml_out").resolve()
        assert config.auth_timeout == 60
        assert config.http_timeout == 10

    def test_environment_overrides_yaml(self, isolated_cwd, env):
        (isolated_cwd / "config.yaml").write_text(
            "spotify:\n  client_id: yaml_id\n  client_secret: yaml_secret\n"
        )

        config = load_config(environ=env)

        assert config.credentials.client_id == "id_from_env"

    def test_explicit_path(self, tmp_path, env):
        path = tmp_path / "custom.yaml"
        path.write_text("network:\n  timeout: 7\n")

        assert load_config(path, environ=env).http_timeout == 7

    def test_explicit_path_missing(self, tmp_path, env):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml", environ=env)

    def test_invalid_yaml(self, isolated_cwd, env):
        (isolated_cwd / "config.yaml").write_text("spotify: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(environ=env)

    def test_yaml_not_a_mapping(self, isolated_cwd, env):
        (isolated_cwd / "config.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="dictionary"):
            load_config(environ=env)

    def test_dotenv_file(self, isolated_cwd, tmp_path, monkeypatch):
        for name in ("CLIENT_ID", "CLIENT_SECRET", "OUTPUT_DIR", "SQLITE_URL",
                     "REDIRECT_URI", "AUTH_TIMEOUT", "HTTP_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)
        (isolated_cwd / ".env").write_text(
            "CLIENT_ID=dotenv_id\n"
            "CLIENT_SECRET=dotenv_secret\n"
            f"OUTPUT_DIR={tmp_path / 'dotenv_out'}\n"
        )

        try:
            config = load_config()
        finally:
            for name in ("CLIENT_ID", "CLIENT_SECRET", "OUTPUT_DIR"):
                os.environ.pop(name, None)

        assert config.credentials.client_id == "dotenv_id"


class TestParseSqliteUrl:
    """Test SQLITE_URL forms"""

    @pytest.mark.parametrize("url,expected", [
        ("sqlite:data.db", "data.db"),
        ("sqlite://data.db", "data.db"),
        ("sqlite:///abs/data.db", "/abs/data.db"),
        ("data.db", "data.db"),
    ])
    def test_accepted_forms(self, url, expected):
        assert parse_sqlite_url(url) == Path(expected).resolve()

    @pytest.mark.parametrize("url", ["sqlite::memory:", "sqlite:", ""])
    def test_rejected_forms(self, url):
        with pytest.raises(ConfigError):
            parse_sqlite_url(url)
