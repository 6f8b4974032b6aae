# graphperm — Graph PowerShell permission analyzer
# Copyright (C) 2026 graphperm Project Contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""Configuration — ~/.graphperm/config.yaml plus environment overrides.

Environment variables take priority over the file:
1. GRAPHPERM_API_VERSION
2. GRAPHPERM_METADATA (file path or http(s) URL)
3. GRAPHPERM_ACCESS_TOKEN
4. GRAPHPERM_HTTP_TIMEOUT

Example file::

    api_version: v1.0
    metadata: ~/graph/MgCommandMetadata.json
    session:
      access_token: env:MY_GRAPH_TOKEN
      scopes: [User.Read.All]
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from graphperm.errors import ConfigError
from graphperm.lookup.metadata import DEFAULT_API_VERSION, DEFAULT_HTTP_TIMEOUT, SUPPORTED_API_VERSIONS
from graphperm.session import (
    AccessTokenSession,
    SessionProvider,
    StaticSession,
    UnauthenticatedSession,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".graphperm"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

ENV_API_VERSION = "GRAPHPERM_API_VERSION"
ENV_METADATA = "GRAPHPERM_METADATA"
ENV_ACCESS_TOKEN = "GRAPHPERM_ACCESS_TOKEN"
ENV_HTTP_TIMEOUT = "GRAPHPERM_HTTP_TIMEOUT"


class SessionSettings(BaseModel):
    """Where granted scopes come from."""

    access_token: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    """Resolved graphperm settings."""

    api_version: str = DEFAULT_API_VERSION
    metadata: Optional[str] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    session: SessionSettings = Field(default_factory=SessionSettings)

    @field_validator("api_version")
    @classmethod
    def _known_api_version(cls, value: str) -> str:
        if value not in SUPPORTED_API_VERSIONS:
            raise ValueError(f"api_version must be one of {', '.join(SUPPORTED_API_VERSIONS)}")
        return value

    @field_validator("http_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout must be positive")
        return value


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data


def _resolve_env_reference(value: Optional[str]) -> Optional[str]:
    """Expand ``env:VAR_NAME`` references."""
    if value and value.startswith("env:"):
        return os.environ.get(value[4:], "").strip() or None
    return value


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from the config file, then apply environment overrides.

    Raises:
        ConfigError: the file is unreadable or a value is invalid.
    """
    config_path = path or CONFIG_FILE
    data = _read_config_file(config_path)

    session_data = data.get("session") or {}
    if not isinstance(session_data, dict):
        raise ConfigError(f"Config {config_path}: 'session' must be a mapping")
    session_data = dict(session_data)
    data = dict(data)

    if os.environ.get(ENV_API_VERSION):
        data["api_version"] = os.environ[ENV_API_VERSION].strip()
    if os.environ.get(ENV_METADATA):
        data["metadata"] = os.environ[ENV_METADATA].strip()
    if os.environ.get(ENV_HTTP_TIMEOUT):
        data["http_timeout"] = os.environ[ENV_HTTP_TIMEOUT].strip()
    if os.environ.get(ENV_ACCESS_TOKEN):
        session_data["access_token"] = os.environ[ENV_ACCESS_TOKEN]

    session_data["access_token"] = _resolve_env_reference(session_data.get("access_token"))
    data["session"] = session_data

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug("Loaded settings from %s", config_path)
    return settings


def session_from_settings(settings: Settings) -> SessionProvider:
    """Pick a session provider: access token first, then a static scope list."""
    if settings.session.access_token:
        return AccessTokenSession(settings.session.access_token)
    if settings.session.scopes:
        return StaticSession(settings.session.scopes)
    return UnauthenticatedSession()
