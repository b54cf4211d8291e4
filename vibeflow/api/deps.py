"""
FastAPI dependencies for outbound HTTP, randomness and session credentials.

Provides:
- get_http_client: an httpx.AsyncClient scoped to the request
- get_rng: the random source used for seed and genre selection
- get_session_credentials: the Spotify session read from signed cookies
- require_access_token: the user's bearer token, or 401

Tests override get_http_client and get_rng through app.dependency_overrides.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status

from vibeflow.core.config import Settings, get_settings
from vibeflow.core.security import read_session_value

ACCESS_TOKEN_COOKIE = "spotify_access_token"
REFRESH_TOKEN_COOKIE = "spotify_refresh_token"
USER_NAME_COOKIE = "spotify_user_name"
AUTH_STATE_COOKIE = "spotify_auth_state"

SESSION_COOKIES = (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, USER_NAME_COOKIE, AUTH_STATE_COOKIE)


@dataclass(frozen=True)
class SessionCredentials:
    """Spotify session carried by cookies. Tokens are opaque and only forwarded."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_name: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)


# PUBLIC_INTERFACE
def get_app_settings() -> Settings:
    """Settings as a dependency."""
    return get_settings()


# PUBLIC_INTERFACE
async def get_http_client(settings: Settings = Depends(get_app_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """Yield an HTTP client for Spotify calls for the request lifecycle."""
    async with httpx.AsyncClient(timeout=settings.SPOTIFY_TIMEOUT_SECONDS) as client:
        yield client


# PUBLIC_INTERFACE
def get_rng() -> random.Random:
    """Random source for shuffles and genre picks."""
    return random.SystemRandom()


# PUBLIC_INTERFACE
def get_session_credentials(request: Request) -> SessionCredentials:
    """Read the signed session cookies. Tampered or expired values are treated as absent."""
    return SessionCredentials(
        access_token=read_session_value(request.cookies.get(ACCESS_TOKEN_COOKIE)),
        refresh_token=read_session_value(request.cookies.get(REFRESH_TOKEN_COOKIE)),
        user_name=request.cookies.get(USER_NAME_COOKIE),
    )


# PUBLIC_INTERFACE
def require_access_token(credentials: SessionCredentials = Depends(get_session_credentials)) -> str:
    """
    Resolve the user's Spotify bearer token.

    Raises:
    - 401 if the access token cookie is missing or invalid
    """
    if not credentials.access_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return credentials.access_token
