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

"""Pydantic models for command occurrences, resolved permissions and scan results."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CommandOccurrence(BaseModel):
    """One Graph cmdlet call found in the script text."""

    model_config = ConfigDict(frozen=True)

    command_name: str  # e.g. "Get-MgUser"
    source_line: str  # trimmed, comment suffix stripped
    line_number: int  # 1-based


class PermissionEntry(BaseModel):
    """A single permission record returned by a permission lookup."""

    model_config = ConfigDict(frozen=True)

    name: str  # e.g. "User.Read.All"
    description: str = ""
    full_description: str = ""


class PermissionInfo(BaseModel):
    """Resolved permission facts for one command.

    ``least_privileged_permission`` is None when the lookup returned no
    application permission; ``all_permissions`` is then empty.
    """

    model_config = ConfigDict(frozen=True)

    least_privileged_permission: Optional[str] = None
    description: Optional[str] = None
    all_permissions: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _least_privileged_is_listed(self) -> "PermissionInfo":
        if (
            self.least_privileged_permission is not None
            and self.least_privileged_permission not in self.all_permissions
        ):
            raise ValueError(
                f"least privileged permission {self.least_privileged_permission!r} "
                "missing from all_permissions"
            )
        return self


class AnalysisResult(BaseModel):
    """One output row: a distinct cmdlet and the permissions it needs."""

    model_config = ConfigDict(frozen=True)

    command_name: str
    line_numbers: list[int] = Field(default_factory=list)  # ascending, unique
    least_privileged_permission: Optional[str] = None
    description: Optional[str] = None
    all_permissions: list[str] = Field(default_factory=list)
    has_scope: bool = False


class ScanSummary(BaseModel):
    """Everything a single analysis run produced."""

    script: str = ""
    api_version: str = "v1.0"
    authenticated: bool = False
    results: list[AnalysisResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
