"""
Mood policy table for VibeFlow.

Maps each mood to:
- a genre pool used for cold-start search and genre seeds
- target audio features that bias Spotify's recommendation ranking
- a predicate over a track's audio features used to filter the user's history

The table is built once at import time and never mutated. Unknown labels
resolve to DEFAULT_MOOD instead of failing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple

from vibeflow.schemas.moods import Mood
from vibeflow.schemas.spotify import AudioFeatures

DEFAULT_MOOD = Mood.NEUTRAL

# Predicate thresholds, calibrated independently of the selection logic
HAPPY_MIN_VALENCE = 0.6
HAPPY_MIN_ENERGY = 0.5
SAD_MAX_VALENCE = 0.4
SAD_MAX_ENERGY = 0.5
ANGRY_MIN_ENERGY = 0.75
NEUTRAL_MIN_VALENCE = 0.35
NEUTRAL_MAX_VALENCE = 0.65
NEUTRAL_MAX_ENERGY = 0.6
SURPRISED_MIN_ENERGY = 0.7
SURPRISED_MIN_DANCEABILITY = 0.6


@dataclass(frozen=True)
class MoodPolicy:
    """Immutable per-mood query policy."""
    mood: Mood
    genre_pool: Tuple[str, ...]
    target_features: Mapping[str, float]
    predicate: Callable[[AudioFeatures], bool] = field(compare=False)

    def matches(self, features: AudioFeatures) -> bool:
        return self.predicate(features)


def _is_happy(f: AudioFeatures) -> bool:
    return f.valence >= HAPPY_MIN_VALENCE and f.energy >= HAPPY_MIN_ENERGY


def _is_sad(f: AudioFeatures) -> bool:
    return f.valence <= SAD_MAX_VALENCE and f.energy <= SAD_MAX_ENERGY


def _is_angry(f: AudioFeatures) -> bool:
    return f.energy >= ANGRY_MIN_ENERGY


def _is_neutral(f: AudioFeatures) -> bool:
    return NEUTRAL_MIN_VALENCE <= f.valence <= NEUTRAL_MAX_VALENCE and f.energy <= NEUTRAL_MAX_ENERGY


def _is_surprised(f: AudioFeatures) -> bool:
    return f.energy >= SURPRISED_MIN_ENERGY and f.danceability >= SURPRISED_MIN_DANCEABILITY


def _policy(mood: Mood, genres: Tuple[str, ...], targets: Dict[str, float], predicate) -> MoodPolicy:
    return MoodPolicy(mood=mood, genre_pool=genres, target_features=MappingProxyType(targets), predicate=predicate)


MOOD_POLICIES: Mapping[Mood, MoodPolicy] = MappingProxyType({
    Mood.HAPPY: _policy(
        Mood.HAPPY,
        ("pop", "dance", "funk", "disco", "house", "reggaeton", "k-pop",
         "hip-hop", "r-n-b", "soul", "indie-pop", "tropical-house", "synth-pop", "power-pop"),
        {"valence": 0.8, "energy": 0.7, "danceability": 0.7},
        _is_happy,
    ),
    Mood.SAD: _policy(
        Mood.SAD,
        ("acoustic", "piano", "indie", "sleep", "ambient", "sad",
         "ballad", "folk", "singer-songwriter", "blues", "classical", "emo"),
        {"valence": 0.2, "energy": 0.3},
        _is_sad,
    ),
    Mood.ANGRY: _policy(
        Mood.ANGRY,
        ("metal", "rock", "punk", "grunge", "industrial", "alt-rock",
         "hardcore", "metalcore", "heavy-metal", "garage", "psych-rock"),
        {"valence": 0.3, "energy": 0.9},
        _is_angry,
    ),
    Mood.NEUTRAL: _policy(
        Mood.NEUTRAL,
        ("chill", "lo-fi", "study", "jazz", "instrumental", "bossa-nova",
         "classical", "minimal-techno", "trip-hop", "groove"),
        {"valence": 0.5, "energy": 0.4},
        _is_neutral,
    ),
    Mood.SURPRISED: _policy(
        Mood.SURPRISED,
        ("electronic", "techno", "dubstep", "psytrance", "hyperpop",
         "drum-and-bass", "glitch-hop", "idm", "breakbeat", "experimental", "club"),
        {"valence": 0.6, "energy": 0.85, "danceability": 0.7},
        _is_surprised,
    ),
})


# PUBLIC_INTERFACE
def resolve_mood(label: Optional[str]) -> Mood:
    """Resolve a free-form label to a Mood, falling back to DEFAULT_MOOD for anything unknown."""
    if not label:
        return DEFAULT_MOOD
    try:
        return Mood(label.strip().lower())
    except ValueError:
        return DEFAULT_MOOD


# PUBLIC_INTERFACE
def get_mood_policy(label: Optional[str]) -> MoodPolicy:
    """Return the policy for a mood label. Never raises; unknown labels get the default policy."""
    return MOOD_POLICIES[resolve_mood(label)]


# PUBLIC_INTERFACE
def mood_from_expressions(expressions: Mapping[str, float]) -> Tuple[Mood, Optional[str], float]:
    """
    Pick the dominant facial expression and map it to a mood.

    Parameters:
    - expressions: expression name -> probability, as produced by the face model.

    Returns:
    - (mood, expression, probability). Ties keep the first expression seen; an empty
      map yields (DEFAULT_MOOD, None, 0.0). Expressions outside the mood set
      (e.g. 'fearful') resolve to DEFAULT_MOOD.
    """
    best: Optional[str] = None
    best_p = 0.0
    for name, probability in expressions.items():
        if best is None or probability > best_p:
            best, best_p = name, float(probability)
    if best is None:
        return DEFAULT_MOOD, None, 0.0
    return resolve_mood(best), best, best_p
