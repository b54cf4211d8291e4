"""
Spotify recommendation routes.

Exposes:
- GET /api/spotify: anonymous mood tracks from a genre search
- GET /api/spotify/personalized: history-aware recommendations for the signed-in user
"""

from __future__ import annotations

import random
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from vibeflow.api.deps import get_app_settings, get_http_client, get_rng, require_access_token
from vibeflow.core.config import Settings
from vibeflow.core.logging import get_logger
from vibeflow.schemas.moods import PersonalizedResponse, TracksResponse
from vibeflow.services.recommendations import get_mood_tracks, get_personalized_tracks
from vibeflow.services.spotify_client import SpotifyAPIError, SpotifyAuthError

router = APIRouter(prefix="/api/spotify", tags=["Spotify"])
logger = get_logger("routes.spotify")


@router.get(
    "",
    summary="Tracks for a mood",
    response_model=TracksResponse,
    responses={
        200: {"description": "Tracks matching the mood"},
        500: {"description": "Missing configuration or Spotify error"},
    },
)
async def mood_tracks(
    mood: Optional[str] = Query(None, description="Mood label; unknown values use the default mood"),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    rng: random.Random = Depends(get_rng),
) -> TracksResponse:
    """
    Return a handful of tracks for a mood without requiring login.

    Returns:
    - { "tracks": [...] } with at most ANONYMOUS_TRACK_COUNT tracks.
    """
    tracks, err = await get_mood_tracks(client, mood, rng, count=settings.ANONYMOUS_TRACK_COUNT)
    if err or tracks is None:
        logger.error("spotify.mood_tracks_failed", {"error": err})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch tracks or missing secret",
        )
    return TracksResponse(tracks=tracks)


@router.get(
    "/personalized",
    summary="Personalized tracks for a mood",
    response_model=PersonalizedResponse,
    responses={
        200: {"description": "Recommendations based on the user's listening history"},
        401: {"description": "Not authenticated or token expired"},
        500: {"description": "Spotify error"},
    },
)
async def personalized_tracks(
    mood: Optional[str] = Query(None, description="Mood label; unknown values use the default mood"),
    debug: bool = Query(False, description="Include seed selection details"),
    token: str = Depends(require_access_token),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    rng: random.Random = Depends(get_rng),
) -> PersonalizedResponse:
    """
    Return recommendations built from the user's top tracks and the mood.

    Raises:
    - 401 "Token expired" if Spotify rejects the session token
    - 500 for any other failure
    """
    try:
        result = await get_personalized_tracks(
            client,
            token,
            mood,
            rng,
            target=settings.RECOMMENDATION_TARGET,
            market=settings.SPOTIFY_MARKET,
        )
    except SpotifyAuthError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except SpotifyAPIError:
        logger.exception("spotify.personalized_failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get recommendations",
        )

    return PersonalizedResponse(
        tracks=result.tracks,
        seedArtists=result.seed_labels,
        debug=result.debug if debug else None,
    )
