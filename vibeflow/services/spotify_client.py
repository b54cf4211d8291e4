"""
Spotify Web API catalog calls used by the recommendation flows.

Exposes search, the user's top tracks, batched audio features and the
recommendations endpoint. All responses are validated into schemas at this
boundary. A 401 raises SpotifyAuthError so callers can prompt a re-login;
other failures raise SpotifyAPIError, except get_recommendations which
degrades to an empty list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from vibeflow.core.config import get_settings
from vibeflow.core.logging import get_logger
from vibeflow.schemas.spotify import AudioFeatures, Track, parse_many

logger = get_logger("spotify.client")

MAX_SEEDS = 5
MAX_AUDIO_FEATURE_IDS = 100
TOP_TRACKS_LIMIT = 50


class SpotifyAPIError(Exception):
    """Non-2xx response or transport failure from the Web API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SpotifyAuthError(SpotifyAPIError):
    """The bearer token was rejected (expired or revoked)."""


@dataclass
class SeedSpec:
    """Seeds for /recommendations. Spotify accepts at most 5 across all kinds."""
    seed_tracks: List[str] = field(default_factory=list)
    seed_artists: List[str] = field(default_factory=list)
    seed_genres: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.seed_tracks) + len(self.seed_artists) + len(self.seed_genres)

    def is_empty(self) -> bool:
        return self.total == 0

    def as_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.seed_tracks:
            params["seed_tracks"] = ",".join(self.seed_tracks)
        if self.seed_artists:
            params["seed_artists"] = ",".join(self.seed_artists)
        if self.seed_genres:
            params["seed_genres"] = ",".join(self.seed_genres)
        return params


def _url(path: str) -> str:
    return get_settings().SPOTIFY_API_URL.rstrip("/") + path


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _get_json(client: httpx.AsyncClient, token: str, path: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    try:
        response = await client.get(_url(path), headers=_bearer(token), params=dict(params))
    except httpx.HTTPError as exc:
        logger.error("spotify.request_failed", {"path": path, "error": str(exc)})
        raise SpotifyAPIError(f"Request to {path} failed") from exc

    if response.status_code == 401:
        logger.info("spotify.token_rejected", {"path": path})
        raise SpotifyAuthError("Token expired", status_code=401)
    if response.status_code != 200:
        logger.error("spotify.request_rejected", {"path": path, "status_code": response.status_code})
        raise SpotifyAPIError(f"{path} returned {response.status_code}", status_code=response.status_code)

    try:
        body = response.json()
    except ValueError as exc:
        raise SpotifyAPIError(f"{path} returned a malformed body", status_code=response.status_code) from exc
    if not isinstance(body, dict):
        raise SpotifyAPIError(f"{path} returned a malformed body", status_code=response.status_code)
    return body


# PUBLIC_INTERFACE
async def search_tracks(
    client: httpx.AsyncClient,
    token: str,
    genre: str,
    limit: int = 10,
    offset: int = 0,
) -> List[Track]:
    """Search the catalog for tracks tagged with a genre."""
    body = await _get_json(
        client,
        token,
        "/search",
        {"q": f"genre:{genre}", "type": "track", "limit": limit, "offset": offset},
    )
    return parse_many(Track, (body.get("tracks") or {}).get("items") or [], logger)


# PUBLIC_INTERFACE
async def get_top_tracks(
    client: httpx.AsyncClient,
    token: str,
    limit: int = TOP_TRACKS_LIMIT,
    time_range: str = "medium_term",
) -> List[Track]:
    """Fetch the signed-in user's top tracks."""
    body = await _get_json(client, token, "/me/top/tracks", {"limit": limit, "time_range": time_range})
    return parse_many(Track, body.get("items") or [], logger)


# PUBLIC_INTERFACE
async def get_audio_features(client: httpx.AsyncClient, token: str, track_ids: Sequence[str]) -> Dict[str, AudioFeatures]:
    """
    Fetch audio features for up to 100 tracks in one batched call.

    Returns:
    - Mapping of track id -> AudioFeatures. Tracks Spotify has no analysis for are absent.
    """
    ids = list(track_ids)[:MAX_AUDIO_FEATURE_IDS]
    if not ids:
        return {}
    body = await _get_json(client, token, "/audio-features", {"ids": ",".join(ids)})
    features = parse_many(AudioFeatures, body.get("audio_features") or [], logger)
    return {f.id: f for f in features}


# PUBLIC_INTERFACE
async def get_recommendations(
    client: httpx.AsyncClient,
    token: str,
    seeds: SeedSpec,
    targets: Optional[Mapping[str, float]] = None,
    limit: int = 10,
    market: Optional[str] = None,
) -> List[Track]:
    """
    Query /recommendations with the given seeds and target audio features.

    Behavior:
    - Returns [] without calling Spotify when no seeds are given.
    - Any failure (non-2xx, transport, malformed body) yields [] rather than raising:
      an empty list means "no recommendations available".
    """
    if seeds.is_empty():
        return []
    if seeds.total > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds are allowed, got {seeds.total}")

    params: Dict[str, Any] = {"limit": min(max(limit, 1), 10), **seeds.as_params()}
    if market:
        params["market"] = market
    for feature, value in (targets or {}).items():
        params[f"target_{feature}"] = value

    try:
        body = await _get_json(client, token, "/recommendations", params)
    except SpotifyAPIError as exc:
        logger.warning("spotify.recommendations_unavailable", {"status_code": exc.status_code})
        return []
    return parse_many(Track, body.get("tracks") or [], logger)
