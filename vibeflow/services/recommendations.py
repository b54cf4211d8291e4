"""
Mood-driven recommendation service for VibeFlow.

This module turns a mood into a track list by combining:
- Anonymous flow: a genre search with an application token
- Personalized flow: the user's top tracks filtered by the mood's audio-feature
  predicate, used both as direct picks and as recommendation seeds

Design notes:
- Seed selection is pure (select_seeds) so it can be tested without HTTP.
- Randomness comes from an injected random.Random; shuffles never mutate the input.
- Fallback precedence when the history yields no match: artist + genre hybrid,
  then genre-only seeds, then a plain genre search with the user token.
- Output is deduplicated by track id, direct picks first, clipped to the target.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

import httpx

from vibeflow.core.logging import get_logger
from vibeflow.schemas.spotify import AudioFeatures, Track
from vibeflow.services.moods import MoodPolicy, get_mood_policy
from vibeflow.services.spotify_auth import clear_app_token_cache, get_app_token
from vibeflow.services.spotify_client import (
    MAX_SEEDS,
    SeedSpec,
    SpotifyAPIError,
    SpotifyAuthError,
    get_audio_features,
    get_recommendations,
    get_top_tracks,
    search_tracks,
)

logger = get_logger("recommendations")

T = TypeVar("T")

SEARCH_PAGE_SIZE = 10
SEARCH_MAX_OFFSET = 100
DEFAULT_TARGET = 10

STRATEGY_HISTORY = "history_match"
STRATEGY_ARTIST_GENRE = "artist_genre"
STRATEGY_GENRE = "genre"
STRATEGY_SEARCH = "genre_search"


@dataclass
class SeedSelection:
    """Seeds chosen for one recommendation attempt plus what to show the user."""
    strategy: str
    seeds: SeedSpec
    labels: List[str] = field(default_factory=list)
    promoted: List[Track] = field(default_factory=list)


@dataclass
class PersonalizedResult:
    tracks: List[Track]
    seed_labels: List[str]
    debug: Dict[str, Any]


# PUBLIC_INTERFACE
def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Return a uniformly shuffled copy of items; the input order is left untouched."""
    copy = list(items)
    rng.shuffle(copy)
    return copy


def _unique(values: Sequence[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


# PUBLIC_INTERFACE
def match_history(policy: MoodPolicy, tracks: Sequence[Track], features: Dict[str, AudioFeatures]) -> List[Track]:
    """Keep the tracks whose audio features satisfy the mood predicate, preserving order."""
    return [t for t in tracks if t.id in features and policy.matches(features[t.id])]


# PUBLIC_INTERFACE
def genre_selection(policy: MoodPolicy, rng: random.Random) -> SeedSelection:
    """Single genre seed drawn uniformly from the mood's pool."""
    genre = rng.choice(policy.genre_pool)
    return SeedSelection(strategy=STRATEGY_GENRE, seeds=SeedSpec(seed_genres=[genre]), labels=[genre])


# PUBLIC_INTERFACE
def select_seeds(
    policy: MoodPolicy,
    top_tracks: Sequence[Track],
    features: Dict[str, AudioFeatures],
    rng: random.Random,
) -> SeedSelection:
    """
    Choose recommendation seeds for a mood from the user's history.

    Strategy:
    - If some top tracks match the mood predicate, shuffle them and keep up to 5.
      They are promoted into the output and used as seed_tracks.
    - Otherwise, if any top track has an artist id, seed with a random track's
      primary artist plus a random genre from the pool.
    - Otherwise (no history), seed with one random genre.

    Returns:
    - SeedSelection with at most MAX_SEEDS seeds in total.
    """
    matches = match_history(policy, top_tracks, features)
    if matches:
        chosen = shuffled(matches, rng)[:MAX_SEEDS]
        labels = _unique([t.primary_artist.name for t in chosen if t.primary_artist])
        return SeedSelection(
            strategy=STRATEGY_HISTORY,
            seeds=SeedSpec(seed_tracks=[t.id for t in chosen]),
            labels=labels,
            promoted=chosen,
        )

    with_artist = [t for t in top_tracks if t.primary_artist and t.primary_artist.id]
    if with_artist:
        artist = rng.choice(with_artist).primary_artist
        genre = rng.choice(policy.genre_pool)
        return SeedSelection(
            strategy=STRATEGY_ARTIST_GENRE,
            seeds=SeedSpec(seed_artists=[artist.id], seed_genres=[genre]),
            labels=[artist.name, genre],
        )

    return genre_selection(policy, rng)


# PUBLIC_INTERFACE
def shape_tracks(promoted: Sequence[Track], recommended: Sequence[Track], target: int = DEFAULT_TARGET) -> List[Track]:
    """
    Merge direct picks and recommendations into one list.

    Direct picks come first; duplicates (by track id) are dropped; the result
    never exceeds target.
    """
    combined: List[Track] = []
    seen = set()
    for track in list(promoted) + list(recommended):
        if len(combined) >= target:
            break
        if track.id not in seen:
            seen.add(track.id)
            combined.append(track)
    return combined


async def _collect_history(
    client: httpx.AsyncClient,
    token: str,
) -> Tuple[List[Track], Dict[str, AudioFeatures]]:
    """Top tracks and their audio features. Auth errors propagate; other failures yield empty data."""
    try:
        tracks = await get_top_tracks(client, token)
    except SpotifyAuthError:
        raise
    except SpotifyAPIError as exc:
        logger.warning("recommendations.top_tracks_unavailable", {"status_code": exc.status_code})
        return [], {}

    if not tracks:
        return [], {}

    try:
        features = await get_audio_features(client, token, [t.id for t in tracks])
    except SpotifyAuthError:
        raise
    except SpotifyAPIError as exc:
        logger.warning("recommendations.audio_features_unavailable", {"status_code": exc.status_code})
        features = {}
    return tracks, features


# PUBLIC_INTERFACE
async def get_mood_tracks(
    client: httpx.AsyncClient,
    mood: Optional[str],
    rng: random.Random,
    count: int = 5,
) -> Tuple[Optional[List[Track]], Optional[str]]:
    """
    Anonymous mood tracks from a genre search.

    Behavior:
    - Uses an application token (client credentials).
    - Picks a random genre from the mood's pool and a random result offset for variety.
    - Shuffles the page and returns the first `count` tracks.

    Returns:
    - (tracks, None) on success
    - (None, "error message") on missing configuration or provider failure
    """
    token, err = await get_app_token(client)
    if err or not token:
        return None, err or "Missing Spotify token"

    policy = get_mood_policy(mood)
    genre = rng.choice(policy.genre_pool)
    offset = rng.randrange(SEARCH_MAX_OFFSET)
    try:
        tracks = await search_tracks(client, token, genre, limit=SEARCH_PAGE_SIZE, offset=offset)
    except SpotifyAuthError as exc:
        # Rejected app token must not be reused by later requests
        clear_app_token_cache()
        return None, str(exc)
    except SpotifyAPIError as exc:
        return None, str(exc)

    logger.info("recommendations.anonymous", {"mood": policy.mood.value, "genre": genre, "found": len(tracks)})
    return shuffled(tracks, rng)[:count], None


# PUBLIC_INTERFACE
async def get_personalized_tracks(
    client: httpx.AsyncClient,
    token: str,
    mood: Optional[str],
    rng: random.Random,
    target: int = DEFAULT_TARGET,
    market: Optional[str] = None,
) -> PersonalizedResult:
    """
    History-aware recommendations for a signed-in user.

    Strategy:
    - Fetch up to 50 top tracks (medium term) and their audio features.
    - Select seeds (see select_seeds) and query /recommendations with the mood's
      target features.
    - If that yields nothing and the seeds were not genre-only, retry once with
      a genre-only seed; if that also yields nothing, search by genre.
    - Merge direct picks and recommendations, deduplicated, up to target.

    Raises:
    - SpotifyAuthError if the user token is rejected.
    - SpotifyAPIError if every source failed and nothing can be returned.
    """
    policy = get_mood_policy(mood)
    top_tracks, features = await _collect_history(client, token)
    selection = select_seeds(policy, top_tracks, features, rng)

    attempts = [selection]
    if selection.strategy != STRATEGY_GENRE:
        attempts.append(genre_selection(policy, rng))

    recommended: List[Track] = []
    used: List[SeedSelection] = []
    for attempt in attempts:
        used.append(attempt)
        recommended = await get_recommendations(
            client,
            token,
            attempt.seeds,
            targets=policy.target_features,
            limit=target,
            market=market,
        )
        if recommended:
            break

    if not recommended:
        genre = rng.choice(policy.genre_pool)
        used.append(SeedSelection(strategy=STRATEGY_SEARCH, seeds=SeedSpec(), labels=[genre]))
        try:
            found = await search_tracks(client, token, genre, limit=SEARCH_PAGE_SIZE, offset=rng.randrange(SEARCH_MAX_OFFSET))
            recommended = shuffled(found, rng)
        except SpotifyAuthError:
            raise
        except SpotifyAPIError:
            if not selection.promoted:
                raise
            logger.warning("recommendations.search_fallback_failed", {"mood": policy.mood.value})

    tracks = shape_tracks(selection.promoted, recommended, target)
    promoted_labels = selection.labels if selection.promoted else []
    labels = _unique(promoted_labels + used[-1].labels)
    final = used[-1]
    debug = {
        "mood": policy.mood.value,
        "strategy": final.strategy,
        "attempts": [s.strategy for s in used],
        "topTracks": len(top_tracks),
        "analyzed": len(features),
        "promoted": len(selection.promoted),
        "seedTracks": final.seeds.seed_tracks,
        "seedArtists": final.seeds.seed_artists,
        "seedGenres": final.seeds.seed_genres,
    }
    logger.info("recommendations.personalized", {k: debug[k] for k in ("mood", "strategy", "topTracks", "promoted")})
    return PersonalizedResult(tracks=tracks, seed_labels=labels, debug=debug)
