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

"""Aggregator — one result row per distinct cmdlet.

Occurrences are grouped by exact cmdlet name in first-seen order. Each
group is resolved once, so the number of lookups equals the number of
distinct cmdlets however often they appear.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from graphperm.models.results import AnalysisResult, CommandOccurrence
from graphperm.scanner.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)

UNAUTHENTICATED_WARNING = (
    "Not connected to Microsoft Graph: HasScope is reported as False for every "
    "cmdlet because the granted scopes are unknown."
)


@dataclass
class _RunState:
    """State scoped to a single aggregate() call."""

    warnings: list[str] = field(default_factory=list)
    warned_unauthenticated: bool = False

    def warn_unauthenticated(self) -> None:
        if self.warned_unauthenticated:
            return
        self.warned_unauthenticated = True
        self.warnings.append(UNAUTHENTICATED_WARNING)
        logger.warning(UNAUTHENTICATED_WARNING)


def group_occurrences(occurrences: Iterable[CommandOccurrence]) -> dict[str, list[int]]:
    """Map each cmdlet name to its ascending, de-duplicated line numbers."""
    groups: dict[str, set[int]] = {}
    for occ in occurrences:
        groups.setdefault(occ.command_name, set()).add(occ.line_number)
    return {name: sorted(lines) for name, lines in groups.items()}


def has_scope(granted: Optional[frozenset[str]], permissions: Iterable[str]) -> bool:
    """True when any granted scope appears in ``permissions``."""
    if not granted:
        return False
    return not granted.isdisjoint(permissions)


def aggregate(
    occurrences: Iterable[CommandOccurrence],
    resolver: PermissionResolver,
    warnings: Optional[list[str]] = None,
) -> list[AnalysisResult]:
    """Resolve every distinct cmdlet and build the result rows.

    Warnings raised during the run are appended to ``warnings`` when given.

    Raises:
        PermissionLookupError: a resolution failed; no partial results.
    """
    state = _RunState(warnings=warnings if warnings is not None else [])

    groups = group_occurrences(occurrences)
    granted = resolver.granted_scopes
    if granted is None:
        state.warn_unauthenticated()

    results: list[AnalysisResult] = []
    for name, line_numbers in groups.items():
        info = resolver.resolve(name)
        results.append(
            AnalysisResult(
                command_name=name,
                line_numbers=line_numbers,
                least_privileged_permission=info.least_privileged_permission,
                description=info.description,
                all_permissions=info.all_permissions,
                has_scope=has_scope(granted, info.all_permissions),
            )
        )

    logger.info("Resolved %d distinct cmdlet(s)", len(results))
    return results
