"""
Spotify token provider for VibeFlow.

Provides:
- build_authorize_url: user consent URL for the authorization-code flow
- get_app_token: client-credentials token for anonymous catalog access (cached in-process)
- exchange_code: authorization code -> user tokens
- fetch_profile: the signed-in user's profile for display purposes

Every call is a single attempt. Failures are returned as (None, "error message")
so the caller decides whether to answer with a 500 or redirect to an error page.
"""

from __future__ import annotations

import time
import urllib.parse
from typing import Optional, Tuple

import httpx
from pydantic import ValidationError

from vibeflow.core.config import get_settings
from vibeflow.core.logging import get_logger
from vibeflow.schemas.spotify import TokenResponse, UserProfile

logger = get_logger("spotify.auth")

# Refresh the cached app token slightly before the provider expires it
APP_TOKEN_EXPIRY_SKEW_SECONDS = 60


class _AppTokenCache:
    """Holds the client-credentials token for its validity window."""

    def __init__(self) -> None:
        self.token: Optional[str] = None
        self.expires_at: float = 0.0

    def get(self) -> Optional[str]:
        if self.token and time.monotonic() < self.expires_at:
            return self.token
        return None

    def put(self, token: str, expires_in: int) -> None:
        self.token = token
        self.expires_at = time.monotonic() + max(expires_in - APP_TOKEN_EXPIRY_SKEW_SECONDS, 0)

    def clear(self) -> None:
        self.token = None
        self.expires_at = 0.0


_app_token_cache = _AppTokenCache()


def _token_url() -> str:
    return get_settings().SPOTIFY_ACCOUNTS_URL.rstrip("/") + "/api/token"


def _client_auth() -> Optional[httpx.BasicAuth]:
    settings = get_settings()
    if not settings.SPOTIFY_CLIENT_ID or not settings.SPOTIFY_CLIENT_SECRET:
        return None
    return httpx.BasicAuth(settings.SPOTIFY_CLIENT_ID, settings.SPOTIFY_CLIENT_SECRET)


async def _request_token(client: httpx.AsyncClient, form: dict) -> Tuple[Optional[TokenResponse], Optional[str]]:
    auth = _client_auth()
    if auth is None:
        logger.error("spotify.config_missing", {"grant_type": form.get("grant_type")})
        return None, "Spotify client credentials are not configured"

    try:
        response = await client.post(_token_url(), data=form, auth=auth)
    except httpx.HTTPError as exc:
        logger.error("spotify.token_request_failed", {"grant_type": form.get("grant_type"), "error": str(exc)})
        return None, "Token request failed"

    if response.status_code != 200:
        logger.error(
            "spotify.token_rejected",
            {"grant_type": form.get("grant_type"), "status_code": response.status_code},
        )
        return None, f"Token endpoint returned {response.status_code}"

    try:
        return TokenResponse.model_validate(response.json()), None
    except (ValueError, ValidationError):
        logger.error("spotify.token_malformed", {"grant_type": form.get("grant_type")})
        return None, "Malformed token response"


# PUBLIC_INTERFACE
def build_authorize_url(state: str) -> str:
    """Build the Spotify consent URL carrying the CSRF state."""
    settings = get_settings()
    params = {
        "response_type": "code",
        "client_id": settings.SPOTIFY_CLIENT_ID,
        "scope": settings.SPOTIFY_SCOPES,
        "redirect_uri": settings.SPOTIFY_REDIRECT_URI,
        "state": state,
        "show_dialog": "true",
    }
    return f"{settings.SPOTIFY_ACCOUNTS_URL.rstrip('/')}/authorize?{urllib.parse.urlencode(params)}"


# PUBLIC_INTERFACE
async def get_app_token(client: httpx.AsyncClient) -> Tuple[Optional[str], Optional[str]]:
    """
    Get an application-level bearer token via the client-credentials grant.

    The token is reused until shortly before the provider-declared expiry.

    Returns:
    - (access_token, None) on success
    - (None, "error message") on failure
    """
    cached = _app_token_cache.get()
    if cached:
        return cached, None

    tokens, err = await _request_token(client, {"grant_type": "client_credentials"})
    if err or not tokens:
        return None, err
    _app_token_cache.put(tokens.access_token, tokens.expires_in)
    return tokens.access_token, None


# PUBLIC_INTERFACE
def clear_app_token_cache() -> None:
    """Drop the cached application token."""
    _app_token_cache.clear()


# PUBLIC_INTERFACE
async def exchange_code(
    client: httpx.AsyncClient,
    code: str,
    redirect_uri: Optional[str] = None,
) -> Tuple[Optional[TokenResponse], Optional[str]]:
    """
    Exchange an authorization code for user tokens.

    Parameters:
    - code: the `code` query parameter Spotify sent to the callback
    - redirect_uri: must equal the one used at authorize time; defaults to configuration

    Returns:
    - (TokenResponse, None) on success
    - (None, "error message") on failure
    """
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri or get_settings().SPOTIFY_REDIRECT_URI,
    }
    return await _request_token(client, form)


# PUBLIC_INTERFACE
async def fetch_profile(client: httpx.AsyncClient, access_token: str) -> Optional[UserProfile]:
    """Fetch /me for the display name. Returns None on any failure."""
    url = get_settings().SPOTIFY_API_URL.rstrip("/") + "/me"
    try:
        response = await client.get(url, headers={"Authorization": f"Bearer {access_token}"})
        if response.status_code != 200:
            logger.warning("spotify.profile_failed", {"status_code": response.status_code})
            return None
        return UserProfile.model_validate(response.json())
    except (httpx.HTTPError, ValueError, ValidationError) as exc:
        logger.warning("spotify.profile_failed", {"error": str(exc)})
        return None
