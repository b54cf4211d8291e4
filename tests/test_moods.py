from types import SimpleNamespace

import pytest

from vibeflow.schemas.moods import Mood
from vibeflow.schemas.spotify import AudioFeatures
from vibeflow.services import moods
from vibeflow.services.moods import (
    DEFAULT_MOOD,
    MOOD_POLICIES,
    get_mood_policy,
    mood_from_expressions,
    resolve_mood,
)


@pytest.mark.parametrize("mood", list(Mood))
def test_every_mood_has_a_policy(mood):
    policy = get_mood_policy(mood.value)
    assert policy.mood is mood
    assert policy.genre_pool
    assert set(policy.target_features) <= {"valence", "energy", "danceability"}


@pytest.mark.parametrize("label", ["", None, "confused", "fearful", "HAPPYISH", "  "])
def test_unknown_labels_get_default_policy(label):
    assert get_mood_policy(label) is MOOD_POLICIES[DEFAULT_MOOD]


def test_labels_are_normalized():
    assert resolve_mood("  Angry ") is Mood.ANGRY


def test_policy_table_is_read_only():
    with pytest.raises(TypeError):
        MOOD_POLICIES[Mood.HAPPY] = MOOD_POLICIES[Mood.SAD]
    with pytest.raises(TypeError):
        MOOD_POLICIES[Mood.HAPPY].target_features["energy"] = 0.0


def test_angry_predicate_uses_energy_threshold():
    policy = get_mood_policy("angry")
    assert policy.matches(AudioFeatures(id="x", energy=moods.ANGRY_MIN_ENERGY, valence=0.9))
    assert not policy.matches(AudioFeatures(id="x", energy=moods.ANGRY_MIN_ENERGY - 0.01))


def test_happy_and_sad_are_disjoint():
    happy, sad = get_mood_policy("happy"), get_mood_policy("sad")
    grid = [AudioFeatures(id="x", valence=v / 10, energy=e / 10) for v in range(11) for e in range(11)]
    assert not any(happy.matches(f) and sad.matches(f) for f in grid)


def test_surprised_needs_danceability():
    policy = get_mood_policy("surprised")
    assert policy.matches(AudioFeatures(id="x", energy=0.8, danceability=0.7))
    assert not policy.matches(AudioFeatures(id="x", energy=0.8, danceability=0.2))


@pytest.mark.parametrize("mood", list(Mood))
def test_predicates_are_pure_and_read_only_documented_fields(mood):
    features = SimpleNamespace(valence=0.5, energy=0.5, danceability=0.5)
    policy = MOOD_POLICIES[mood]
    results = {policy.matches(features) for _ in range(5)}
    assert len(results) == 1
    assert vars(features) == {"valence": 0.5, "energy": 0.5, "danceability": 0.5}


def test_mood_from_expressions_picks_highest():
    assert mood_from_expressions({"sad": 0.2, "happy": 0.75, "neutral": 0.05}) == (Mood.HAPPY, "happy", 0.75)


def test_mood_from_expressions_tie_keeps_first():
    mood, expression, _ = mood_from_expressions({"surprised": 0.5, "angry": 0.5})
    assert mood is Mood.SURPRISED
    assert expression == "surprised"


def test_mood_from_expressions_empty():
    assert mood_from_expressions({}) == (DEFAULT_MOOD, None, 0.0)
