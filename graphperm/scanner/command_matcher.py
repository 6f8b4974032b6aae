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

"""Graph cmdlet matcher — regex-based extraction of ``Verb-MgNoun`` calls.

Scans PowerShell script text line by line and yields every Microsoft Graph
SDK cmdlet it recognises:
- A cmdlet is an approved PowerShell verb, the ``-Mg`` namespace marker and
  a run of identifier characters (``Get-MgUser``, ``New-MgGroupMember``).
- ``#`` comments are stripped before matching; full-line comments are skipped.
- Cmdlets from Microsoft.Graph.Authentication manage the session itself and
  are never reported.

Block comments (``<# ... #>``) are not understood. Text inside them is
scanned like ordinary code.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator, Optional

from graphperm.models.results import CommandOccurrence

logger = logging.getLogger(__name__)


NAMESPACE_MARKER = "-Mg"


# ── Approved PowerShell verbs (Get-Verb) ──

APPROVED_VERBS: frozenset[str] = frozenset({
    # Common
    "Add", "Clear", "Close", "Copy", "Enter", "Exit", "Find", "Format", "Get",
    "Hide", "Join", "Lock", "Move", "New", "Open", "Optimize", "Pop", "Push",
    "Redo", "Remove", "Rename", "Reset", "Resize", "Search", "Select", "Set",
    "Show", "Skip", "Split", "Step", "Switch", "Undo", "Unlock", "Watch",
    # Communications
    "Connect", "Disconnect", "Read", "Receive", "Send", "Write",
    # Data
    "Backup", "Checkpoint", "Compare", "Compress", "Convert", "ConvertFrom",
    "ConvertTo", "Dismount", "Edit", "Expand", "Export", "Group", "Import",
    "Initialize", "Limit", "Merge", "Mount", "Out", "Publish", "Restore",
    "Save", "Sync", "Unpublish", "Update",
    # Diagnostic
    "Debug", "Measure", "Ping", "Repair", "Resolve", "Test", "Trace",
    # Lifecycle
    "Approve", "Assert", "Build", "Complete", "Confirm", "Deny", "Deploy",
    "Disable", "Enable", "Install", "Invoke", "Register", "Request", "Restart",
    "Resume", "Start", "Stop", "Submit", "Suspend", "Uninstall", "Unregister",
    "Wait",
    # Security
    "Block", "Grant", "Protect", "Revoke", "Unblock", "Unprotect",
    # Other
    "Use",
})


# ── Microsoft.Graph.Authentication cmdlets (session management only) ──

AUTHENTICATION_COMMANDS: frozenset[str] = frozenset({
    "Connect-MgGraph",
    "Disconnect-MgGraph",
    "Get-MgContext",
    "Invoke-MgGraphRequest",
    "Find-MgGraphCommand",
    "Find-MgGraphPermission",
    "Get-MgEnvironment",
    "Add-MgEnvironment",
    "Set-MgEnvironment",
    "Remove-MgEnvironment",
    "Get-MgRequestContext",
    "Set-MgRequestContext",
    "Get-MgGraphOption",
    "Set-MgGraphOption",
    "Get-MgProfile",
    "Select-MgProfile",
})


COMMENT_SUFFIX = re.compile(r"""\s*#.*$""")


def build_command_pattern(
    verbs: Iterable[str] = APPROVED_VERBS,
    marker: str = NAMESPACE_MARKER,
) -> re.Pattern:
    """Compile the cmdlet pattern for a verb set and namespace marker.

    Longer verbs come first in the alternation so ``ConvertFrom`` is tried
    before ``Convert``. The lookbehind keeps ``MyGet-MgUser`` from matching.
    """
    alternation = "|".join(
        re.escape(v) for v in sorted(set(verbs), key=lambda v: (-len(v), v))
    )
    return re.compile(
        rf"""(?<![\w-])(?:{alternation}){re.escape(marker)}[A-Za-z0-9_]+""",
        re.IGNORECASE,
    )


def strip_comment(line: str) -> str:
    """Drop a trailing ``#`` comment and surrounding whitespace."""
    return COMMENT_SUFFIX.sub("", line).strip()


class CommandMatcher:
    """Finds Graph cmdlet names in a single line of script text."""

    def __init__(
        self,
        verbs: Iterable[str] = APPROVED_VERBS,
        marker: str = NAMESPACE_MARKER,
        excluded: Iterable[str] = AUTHENTICATION_COMMANDS,
    ) -> None:
        self.pattern = build_command_pattern(verbs, marker)
        # Exclusions are compared case-insensitively, as PowerShell resolves them.
        self.excluded = frozenset(name.casefold() for name in excluded)

    def is_excluded(self, command_name: str) -> bool:
        return command_name.casefold() in self.excluded

    def find_all(self, line: str) -> list[str]:
        """Return every non-excluded cmdlet in ``line``, left to right."""
        found: list[str] = []
        for match in self.pattern.finditer(line):
            name = match.group(0)
            if self.is_excluded(name):
                logger.debug("Skipping authentication cmdlet %s", name)
                continue
            found.append(name)
        return found


DEFAULT_MATCHER = CommandMatcher()


def extract_commands(
    lines: Iterable[str], matcher: Optional[CommandMatcher] = None
) -> Iterator[CommandOccurrence]:
    """Yield a CommandOccurrence for every cmdlet call in ``lines``.

    Line numbers are 1-based and count every input line, including blank
    and comment-only lines that produce no occurrence.
    """
    matcher = matcher or DEFAULT_MATCHER

    for line_num, raw_line in enumerate(lines, start=1):
        line = strip_comment(raw_line)
        if not line:
            continue

        for name in matcher.find_all(line):
            yield CommandOccurrence(
                command_name=name,
                source_line=line,
                line_number=line_num,
            )
