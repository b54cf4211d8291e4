"""
Authentication routes: Spotify OAuth login, callback and logout.

Exposes:
- GET /api/auth/login: redirect to Spotify consent with a fresh CSRF state
- GET /api/auth/callback: validate state, exchange the code, set session cookies
- POST /api/auth/logout: clear all session cookies

Callback failures redirect back to the app with ?error=<code> where code is one of
access_denied, state_mismatch, no_code, token_exchange_failed, callback_error.
"""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from vibeflow.api.deps import (
    ACCESS_TOKEN_COOKIE,
    AUTH_STATE_COOKIE,
    REFRESH_TOKEN_COOKIE,
    SESSION_COOKIES,
    USER_NAME_COOKIE,
    get_app_settings,
    get_http_client,
)
from vibeflow.core.config import Settings
from vibeflow.core.logging import get_logger
from vibeflow.core.security import generate_state, sign_session_value, states_match
from vibeflow.schemas.moods import LogoutResponse
from vibeflow.services.spotify_auth import build_authorize_url, exchange_code, fetch_profile

router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = get_logger("auth")

STATE_MAX_AGE = 60 * 10
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 30
USER_NAME_MAX_AGE = 60 * 60 * 24 * 30


def _app_redirect(request: Request, settings: Settings, **params: str) -> RedirectResponse:
    url = request.base_url.replace(path=settings.APP_REDIRECT_PATH).include_query_params(**params)
    return RedirectResponse(str(url), status_code=302)


def _fail(request: Request, settings: Settings, code: str) -> RedirectResponse:
    response = _app_redirect(request, settings, error=code)
    # State is single-use whatever the outcome
    response.delete_cookie(AUTH_STATE_COOKIE)
    return response


@router.get(
    "/login",
    summary="Start Spotify login",
    responses={302: {"description": "Redirect to Spotify consent page"}},
)
def login(settings: Settings = Depends(get_app_settings)) -> RedirectResponse:
    """
    Redirect the browser to Spotify's consent page.

    A fresh state nonce is placed both in the authorize URL and in a 10 minute
    httpOnly cookie; the callback accepts the code only when they match.
    """
    state = generate_state()
    response = RedirectResponse(build_authorize_url(state), status_code=302)
    response.set_cookie(
        AUTH_STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return response


@router.get(
    "/callback",
    summary="Spotify OAuth callback",
    responses={302: {"description": "Redirect back to the app with login=success or error=<code>"}},
)
async def callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code"),
    state: Optional[str] = Query(None, description="State echoed by Spotify"),
    error: Optional[str] = Query(None, description="Set by Spotify when the user declines"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> RedirectResponse:
    """
    Complete the authorization-code flow.

    Behavior:
    - Rejects declined consent, state mismatch and missing code, in that order.
    - Exchanges the code for tokens (single attempt) and fetches the profile name.
    - On success sets access token, refresh token and display name cookies and
      clears the state cookie. No token cookies are set on any failure.
    """
    if error:
        logger.info("auth.access_denied", {"reason": error})
        return _fail(request, settings, "access_denied")

    if not states_match(request.cookies.get(AUTH_STATE_COOKIE), state):
        logger.warning("auth.state_mismatch")
        return _fail(request, settings, "state_mismatch")

    if not code:
        return _fail(request, settings, "no_code")

    try:
        tokens, err = await exchange_code(client, code, settings.SPOTIFY_REDIRECT_URI)
        if err or not tokens:
            return _fail(request, settings, "token_exchange_failed")

        profile = await fetch_profile(client, tokens.access_token)
        response = _app_redirect(request, settings, login="success")
        response.set_cookie(
            ACCESS_TOKEN_COOKIE,
            sign_session_value(tokens.access_token, tokens.expires_in),
            max_age=tokens.expires_in,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )
        if tokens.refresh_token:
            response.set_cookie(
                REFRESH_TOKEN_COOKIE,
                sign_session_value(tokens.refresh_token, REFRESH_TOKEN_MAX_AGE),
                max_age=REFRESH_TOKEN_MAX_AGE,
                httponly=True,
                secure=settings.cookie_secure,
                samesite="lax",
            )
        # Readable by client script for the greeting
        response.set_cookie(
            USER_NAME_COOKIE,
            profile.label if profile else "",
            max_age=USER_NAME_MAX_AGE,
            httponly=False,
            secure=settings.cookie_secure,
            samesite="lax",
        )
        response.delete_cookie(AUTH_STATE_COOKIE)
    except Exception:
        logger.exception("auth.callback_error")
        return _fail(request, settings, "callback_error")

    logger.info("auth.login_success")
    return response


@router.post(
    "/logout",
    summary="Log out",
    response_model=LogoutResponse,
    responses={200: {"description": "Session cookies cleared"}},
)
def logout() -> JSONResponse:
    """Clear every Spotify session cookie."""
    response = JSONResponse(LogoutResponse().model_dump())
    for name in SESSION_COOKIES:
        response.delete_cookie(name)
    return response
