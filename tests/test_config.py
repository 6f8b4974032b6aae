"""Tests for settings loading and session selection."""

from pathlib import Path

import pytest

from conftest import make_token
from graphperm.config import (
    ENV_ACCESS_TOKEN,
    ENV_API_VERSION,
    ENV_HTTP_TIMEOUT,
    ENV_METADATA,
    Settings,
    load_settings,
    session_from_settings,
)
from graphperm.errors import ConfigError
from graphperm.session import AccessTokenSession, StaticSession, UnauthenticatedSession


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_ACCESS_TOKEN, ENV_API_VERSION, ENV_HTTP_TIMEOUT, ENV_METADATA, "MY_GRAPH_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """File and environment sources."""

    def test_missing_file_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path / "config.yaml")
        assert settings.api_version == "v1.0"
        assert settings.metadata is None
        assert settings.http_timeout == 30.0

    def test_file_values(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "api_version: beta\n"
            "metadata: /data/meta.json\n"
            "http_timeout: 10\n"
            "session:\n"
            "  scopes: [User.Read.All]\n"
        )
        settings = load_settings(path)
        assert settings.api_version == "beta"
        assert settings.metadata == "/data/meta.json"
        assert settings.http_timeout == 10
        assert settings.session.scopes == ["User.Read.All"]

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("api_version: beta\nmetadata: /file.json\n")
        monkeypatch.setenv(ENV_API_VERSION, "v1.0")
        monkeypatch.setenv(ENV_METADATA, "https://example.test/meta.json")
        monkeypatch.setenv(ENV_HTTP_TIMEOUT, "2.5")
        settings = load_settings(path)
        assert settings.api_version == "v1.0"
        assert settings.metadata == "https://example.test/meta.json"
        assert settings.http_timeout == 2.5

    def test_env_token_reference(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("session:\n  access_token: env:MY_GRAPH_TOKEN\n")
        monkeypatch.setenv("MY_GRAPH_TOKEN", "abc.def.ghi")
        assert load_settings(path).session.access_token == "abc.def.ghi"

    def test_unset_token_reference(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("session:\n  access_token: env:MY_GRAPH_TOKEN\n")
        assert load_settings(path).session.access_token is None

    def test_invalid_api_version(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("api_version: v2.0\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_invalid_timeout(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv(ENV_HTTP_TIMEOUT, "-1")
        with pytest.raises(ConfigError):
            load_settings(tmp_path / "config.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("api_version: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_settings(path)


class TestSessionFromSettings:
    def test_token_preferred(self):
        settings = Settings.model_validate(
            {"session": {"access_token": make_token({"scp": "User.Read"}), "scopes": ["Mail.Read"]}}
        )
        session = session_from_settings(settings)
        assert isinstance(session, AccessTokenSession)
        assert session.current_granted_scopes() == frozenset({"User.Read"})

    def test_static_scopes(self):
        session = session_from_settings(Settings.model_validate({"session": {"scopes": ["Mail.Read"]}}))
        assert isinstance(session, StaticSession)

    def test_unauthenticated(self):
        assert isinstance(session_from_settings(Settings()), UnauthenticatedSession)
