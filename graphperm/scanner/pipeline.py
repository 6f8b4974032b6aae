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

"""Scan pipeline — script text to per-cmdlet permission rows.

Extraction finishes before any lookup starts; lookups then run one after
another, one per distinct cmdlet.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from graphperm.models.results import ScanSummary
from graphperm.scanner.aggregator import aggregate
from graphperm.scanner.command_matcher import CommandMatcher, extract_commands
from graphperm.scanner.permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)


def analyze_lines(
    lines: Iterable[str],
    resolver: PermissionResolver,
    *,
    matcher: Optional[CommandMatcher] = None,
    script: str = "",
) -> ScanSummary:
    """Run the full analysis over already-read script lines."""
    occurrences = list(extract_commands(lines, matcher))
    logger.debug("Found %d cmdlet occurrence(s)", len(occurrences))

    warnings: list[str] = []
    results = aggregate(occurrences, resolver, warnings)

    return ScanSummary(
        script=script,
        api_version=resolver.api_version,
        authenticated=resolver.granted_scopes is not None,
        results=results,
        warnings=warnings,
    )


def read_script_lines(path: Path) -> list[str]:
    """Read a script as text lines, split on newlines only.

    Form feeds, U+2028 and other characters str.splitlines() treats as
    breaks stay inside their line so line numbers match the editor.

    Raises:
        FileNotFoundError: the path does not exist.
        IsADirectoryError: the path is a directory.
    """
    if not path.exists():
        raise FileNotFoundError(f"Script not found: {path}")
    if path.is_dir():
        raise IsADirectoryError(f"Not a file: {path}")
    with open(path, encoding="utf-8", errors="replace", newline=None) as f:
        return [line.rstrip("\n") for line in f]


def analyze_script(
    path: Path,
    resolver: PermissionResolver,
    *,
    matcher: Optional[CommandMatcher] = None,
) -> ScanSummary:
    """Read ``path`` and analyze it."""
    path = Path(path)
    logger.info("Scanning %s", path)
    return analyze_lines(read_script_lines(path), resolver, matcher=matcher, script=str(path))
