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

"""Permission lookups — answer "which permissions does this cmdlet need?".

Backed by a Graph command-metadata document: a list of records shaped like

    {"Command": "Get-MgUser", "ApiVersion": "v1.0", "Method": "GET",
     "Uri": "/users", "Permissions": [
         {"Name": "User.Read.All", "Description": "Read all users' full profiles",
          "FullDescription": "Allows the app to read ..."}]}

A cmdlet usually maps to several URIs; their permission lists are
concatenated in document order.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import requests
import yaml

from graphperm.errors import CommandNotFoundError, PermissionLookupError
from graphperm.models.results import PermissionEntry

logger = logging.getLogger(__name__)

SUPPORTED_API_VERSIONS = ("v1.0", "beta")
DEFAULT_API_VERSION = "v1.0"
DEFAULT_HTTP_TIMEOUT = 30.0


class PermissionLookup(ABC):
    """Base class for permission lookups."""

    @abstractmethod
    def lookup(self, command_name: str, api_version: str = DEFAULT_API_VERSION) -> list[PermissionEntry]:
        """Return the permissions for ``command_name`` in ``api_version``.

        Raises:
            CommandNotFoundError: the command is unknown for that version.
            PermissionLookupError: the backing source failed.
        """
        ...


def _parse_permission(raw: Any) -> PermissionEntry:
    if not isinstance(raw, dict) or not raw.get("Name"):
        raise ValueError(f"malformed permission record: {raw!r}")
    return PermissionEntry(
        name=str(raw["Name"]),
        description=str(raw.get("Description") or ""),
        full_description=str(raw.get("FullDescription") or ""),
    )


def build_index(records: Any) -> dict[tuple[str, str], list[PermissionEntry]]:
    """Index metadata records by (casefolded command, api version).

    Raises ValueError when the document is not a list of command records.
    """
    if not isinstance(records, list):
        raise ValueError("command metadata must be a list of records")

    index: dict[tuple[str, str], list[PermissionEntry]] = {}
    for record in records:
        if not isinstance(record, dict) or not record.get("Command"):
            raise ValueError(f"malformed command record: {record!r}")
        key = (str(record["Command"]).casefold(), str(record.get("ApiVersion") or DEFAULT_API_VERSION))
        entries = index.setdefault(key, [])
        for raw in record.get("Permissions") or []:
            entries.append(_parse_permission(raw))
    return index


class _IndexedLookup(PermissionLookup):
    """Answers lookups from an in-memory index built once."""

    def __init__(self, index: dict[tuple[str, str], list[PermissionEntry]], source: str) -> None:
        self._index = index
        self.source = source

    def lookup(self, command_name: str, api_version: str = DEFAULT_API_VERSION) -> list[PermissionEntry]:
        key = (command_name.casefold(), api_version)
        if key not in self._index:
            raise CommandNotFoundError(command_name, api_version)
        entries = self._index[key]
        logger.debug("%s (%s): %d permission(s) from %s", command_name, api_version, len(entries), self.source)
        return list(entries)


class MetadataFileLookup(_IndexedLookup):
    """Lookup backed by a local JSON or YAML command-metadata file."""

    def __init__(self, path: Path) -> None:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PermissionLookupError("*", f"could not read metadata file {path}: {e}") from e

        try:
            if path.suffix.lower() in (".yaml", ".yml"):
                records = yaml.safe_load(text)
            else:
                records = json.loads(text)
            index = build_index(records)
        except (ValueError, yaml.YAMLError) as e:
            raise PermissionLookupError("*", f"invalid metadata file {path}: {e}") from e

        logger.info("Loaded permission metadata for %d command(s) from %s", len(index), path)
        super().__init__(index, str(path))


class HttpMetadataLookup(_IndexedLookup):
    """Lookup backed by a command-metadata document served over HTTP(S)."""

    def __init__(self, url: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> None:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            index = build_index(response.json())
        except requests.RequestException as e:
            raise PermissionLookupError("*", f"could not fetch metadata from {url}: {e}") from e
        except ValueError as e:
            raise PermissionLookupError("*", f"invalid metadata from {url}: {e}") from e

        logger.info("Fetched permission metadata for %d command(s) from %s", len(index), url)
        super().__init__(index, url)


def create_lookup(source: str, timeout: float = DEFAULT_HTTP_TIMEOUT) -> PermissionLookup:
    """Build a lookup for a file path or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        return HttpMetadataLookup(source, timeout=timeout)
    return MetadataFileLookup(Path(source).expanduser())
