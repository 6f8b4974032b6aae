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

"""Permission resolver — pick the application permissions a cmdlet needs.

Lookups return both delegated and application permissions. Only entries
whose text reads "Allows the app ..." without a "your" qualifier are kept;
those are the grants that let a script act on arbitrary tenant data rather
than on the signed-in user's own. The lookup is expected to return them
ordered from least to most privileged, so the first survivor wins.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from graphperm.errors import PermissionLookupError
from graphperm.lookup.metadata import DEFAULT_API_VERSION, PermissionLookup
from graphperm.models.results import PermissionEntry, PermissionInfo
from graphperm.session import SessionProvider, UnauthenticatedSession

logger = logging.getLogger(__name__)

APP_ONLY_PREFIX = re.compile(r"""^\s*allows\s+the\s+app\b""", re.IGNORECASE)
DELEGATED_QUALIFIER = re.compile(r"""\byour\b""", re.IGNORECASE)

_UNSET = object()


def permission_text(entry: PermissionEntry) -> str:
    """The sentence used to classify a permission (full text when available)."""
    return entry.full_description or entry.description


def is_app_only(entry: PermissionEntry) -> bool:
    """True when the permission grants app-level access to arbitrary data."""
    text = permission_text(entry)
    return bool(APP_ONLY_PREFIX.search(text)) and not DELEGATED_QUALIFIER.search(text)


def select_permissions(entries: list[PermissionEntry]) -> PermissionInfo:
    """Reduce lookup entries to the least-privileged grant plus the full list."""
    app_only = [e for e in entries if is_app_only(e)]
    if not app_only:
        return PermissionInfo()

    names = list(dict.fromkeys(e.name for e in app_only))
    least = app_only[0]
    return PermissionInfo(
        least_privileged_permission=least.name,
        description=least.description or least.full_description,
        all_permissions=names,
    )


class PermissionResolver:
    """Resolves cmdlets to permissions and exposes the session's granted scopes."""

    def __init__(
        self,
        lookup: PermissionLookup,
        session: Optional[SessionProvider] = None,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        self.lookup = lookup
        self.session = session or UnauthenticatedSession()
        self.api_version = api_version
        self._granted_scopes = _UNSET

    @property
    def granted_scopes(self) -> Optional[frozenset[str]]:
        """Scopes held by the current session, or None when unauthenticated.

        Read from the session on first access only.
        """
        if self._granted_scopes is _UNSET:
            self._granted_scopes = self.session.current_granted_scopes()
        return self._granted_scopes

    def resolve(self, command_name: str, api_version: Optional[str] = None) -> PermissionInfo:
        """Resolve one cmdlet.

        Raises:
            PermissionLookupError: the lookup failed. Never swallowed; a
                failed resolution aborts the scan.
        """
        version = api_version or self.api_version
        try:
            entries = self.lookup.lookup(command_name, version)
        except PermissionLookupError:
            raise
        except Exception as e:
            raise PermissionLookupError(command_name, str(e)) from e

        info = select_permissions(entries)
        if info.least_privileged_permission is None:
            logger.info("%s: no application permission in %d lookup result(s)", command_name, len(entries))
        else:
            logger.debug(
                "%s: least privileged %s of %s",
                command_name,
                info.least_privileged_permission,
                ", ".join(info.all_permissions),
            )
        return info
