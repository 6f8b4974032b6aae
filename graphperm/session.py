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

"""Session providers — which scopes does the signed-in session hold?

``current_granted_scopes()`` returns None when there is no authenticated
session; scope coverage is then unknown and reported as False.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from graphperm.errors import SessionError

logger = logging.getLogger(__name__)


class SessionProvider(ABC):
    """Base class for session providers."""

    @abstractmethod
    def current_granted_scopes(self) -> Optional[frozenset[str]]:
        """Return granted scope names, or None when unauthenticated."""
        ...


class UnauthenticatedSession(SessionProvider):
    """No session at all."""

    def current_granted_scopes(self) -> Optional[frozenset[str]]:
        return None


class StaticSession(SessionProvider):
    """A fixed list of scopes (config file or command line)."""

    def __init__(self, scopes: Iterable[str]) -> None:
        self.scopes = frozenset(s.strip() for s in scopes if s and s.strip())

    def current_granted_scopes(self) -> Optional[frozenset[str]]:
        return self.scopes


def decode_jwt_claims(token: str) -> dict:
    """Decode the payload of a JWT without verifying its signature.

    Raises:
        SessionError: the token is not a well-formed JWT.
    """
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise SessionError("access token is not a JWT (expected three dot-separated parts)")

    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise SessionError(f"could not decode access token payload: {e}") from e

    if not isinstance(claims, dict):
        raise SessionError("access token payload is not a JSON object")
    return claims


class AccessTokenSession(SessionProvider):
    """Scopes read from a Graph access token.

    Delegated tokens carry a space-separated ``scp`` claim, app-only tokens
    a ``roles`` list; both are merged.
    """

    def __init__(self, token: Optional[str]) -> None:
        self.token = (token or "").strip()

    def current_granted_scopes(self) -> Optional[frozenset[str]]:
        if not self.token:
            return None

        claims = decode_jwt_claims(self.token)
        scopes: set[str] = set()

        scp = claims.get("scp")
        if isinstance(scp, str):
            scopes.update(scp.split())

        roles = claims.get("roles")
        if isinstance(roles, list):
            scopes.update(str(r) for r in roles)

        logger.debug("Access token grants %d scope(s)", len(scopes))
        return frozenset(scopes)
