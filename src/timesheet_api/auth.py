from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .models import UserEntity

_security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by the timesheet endpoints."""

    user_id: int
    role: str


# PUBLIC_INTERFACE
class TokenRegistry:
    """
    Issues opaque bearer tokens and resolves them back to an Identity.

    Tokens live in process memory only and expire after `ttl`. They are
    illustrative and disappear on restart.
    """

    def __init__(self, ttl: timedelta, now: Callable[[], datetime] = datetime.now) -> None:
        self._ttl = ttl
        self._now = now
        self._lock = Lock()
        self._tokens: Dict[str, Tuple[Identity, datetime]] = {}

    def issue(self, user: UserEntity) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sweep()
            self._tokens[token] = (Identity(user["id"], user["role"]), self._now() + self._ttl)
        return token

    def _sweep(self) -> None:
        """Drop expired tokens. Caller holds the lock."""
        now = self._now()
        for token in [t for t, (_, expires_at) in self._tokens.items() if now >= expires_at]:
            del self._tokens[token]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def resolve(self, token: str) -> Optional[Identity]:
        with self._lock:
            found = self._tokens.get(token)
            if found is None:
                return None
            identity, expires_at = found
            if self._now() >= expires_at:
                del self._tokens[token]
                return None
            return identity


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
def get_current_identity(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
) -> Identity:
    """
    Resolve the caller from the `Authorization: Bearer <token>` header.

    Raises:
        HTTPException(401) if the token is missing, unknown or expired.
    """
    if creds is None or not creds.credentials:
        raise _unauthorized("Access token required")

    registry: TokenRegistry = request.app.state.tokens
    identity = registry.resolve(creds.credentials)
    if identity is None:
        raise _unauthorized("Invalid or expired token")
    return identity
