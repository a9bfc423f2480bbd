# ABOUTME: Boundary to the external authentication provider.
# ABOUTME: The editor only needs the current user and a credential refresh.

from dataclasses import dataclass
from typing import Protocol

import structlog

from ward_bulletin.errors import AuthenticationError

log = structlog.get_logger()


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str = ""


class AuthProvider(Protocol):
    """What the editor needs from an identity provider."""

    async def current_user(self) -> AuthUser | None: ...

    async def refresh_session(self) -> None:
        """Renew credentials. Raises AuthenticationError when the session cannot be renewed."""
        ...


class StaticAuthProvider:
    """Provider with a fixed user, for the CLI and local use.

    ``expired`` simulates a session that can no longer be refreshed.
    """

    def __init__(self, user: AuthUser | None = None, expired: bool = False) -> None:
        self.user = user
        self.expired = expired

    async def current_user(self) -> AuthUser | None:
        return self.user

    async def refresh_session(self) -> None:
        if self.user is None or self.expired:
            log.warning("session_refresh_failed", user=self.user.id if self.user else None)
            raise AuthenticationError("Session refresh failed", context="auth")
        log.debug("session_refreshed", user=self.user.id)
