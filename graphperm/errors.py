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

"""Exception types raised by graphperm.

Only resolution failures abort a scan. Export failures are reported and
the in-memory results are still shown.
"""

from __future__ import annotations


class GraphPermError(Exception):
    """Base class for all graphperm errors."""


class PermissionLookupError(GraphPermError):
    """The permission lookup failed for a command."""

    def __init__(self, command_name: str, message: str) -> None:
        self.command_name = command_name
        self.message = message
        super().__init__(f"{command_name}: {message}")


class CommandNotFoundError(PermissionLookupError):
    """The lookup has no metadata for the command in the requested API version."""

    def __init__(self, command_name: str, api_version: str) -> None:
        self.api_version = api_version
        super().__init__(
            command_name,
            f"no permission metadata for this command in API version {api_version}",
        )


class SessionError(GraphPermError):
    """The session collaborator could not report granted scopes."""


class ConfigError(GraphPermError):
    """Configuration file or environment values are invalid."""


class ExportError(GraphPermError):
    """Writing results to an output sink failed."""
