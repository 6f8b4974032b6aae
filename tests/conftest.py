"""Shared fakes for the permission lookup and session collaborators."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Optional

import pytest

from graphperm.errors import CommandNotFoundError
from graphperm.lookup.metadata import PermissionLookup
from graphperm.models.results import PermissionEntry
from graphperm.session import SessionProvider

FIXTURES = Path(__file__).parent / "fixtures"


class RecordingLookup(PermissionLookup):
    """In-memory lookup that records every call."""

    def __init__(self, table: dict[str, list[PermissionEntry]]) -> None:
        self.table = table
        self.calls: list[tuple[str, str]] = []

    def lookup(self, command_name: str, api_version: str = "v1.0") -> list[PermissionEntry]:
        self.calls.append((command_name, api_version))
        if command_name not in self.table:
            raise CommandNotFoundError(command_name, api_version)
        return list(self.table[command_name])


class CountingSession(SessionProvider):
    """Session returning fixed scopes and counting how often it is asked."""

    def __init__(self, scopes: Optional[set[str]]) -> None:
        self.scopes = frozenset(scopes) if scopes is not None else None
        self.calls = 0

    def current_granted_scopes(self) -> Optional[frozenset[str]]:
        self.calls += 1
        return self.scopes


def app_permission(name: str, description: str = "") -> PermissionEntry:
    return PermissionEntry(
        name=name,
        description=description or f"{name} description",
        full_description=f"Allows the app to use {name} without a signed-in user.",
    )


def delegated_permission(name: str) -> PermissionEntry:
    return PermissionEntry(
        name=name,
        description=f"{name} (delegated)",
        full_description=f"Allows the app to access your {name} data.",
    )


def make_token(claims: dict) -> str:
    """Unsigned JWT carrying ``claims``."""

    def _segment(data: dict) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{_segment({'alg': 'none', 'typ': 'JWT'})}.{_segment(claims)}.signature"


@pytest.fixture
def lookup() -> RecordingLookup:
    return RecordingLookup(
        {
            "Get-MgUser": [
                app_permission("User.Read.All", "Read all users' full profiles"),
                delegated_permission("User.ReadBasic.All"),
                app_permission("User.ReadWrite.All"),
            ],
            "Get-MgGroup": [
                app_permission("Group.Read.All"),
                app_permission("Directory.Read.All"),
            ],
            "Get-MgUserTodoList": [delegated_permission("Tasks.Read")],
        }
    )
