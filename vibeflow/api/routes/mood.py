"""
Mood routes.

Exposes:
- POST /api/mood: map facial-expression probabilities to a mood label
"""

from __future__ import annotations

from fastapi import APIRouter

from vibeflow.schemas.moods import MoodDetectionRequest, MoodDetectionResponse
from vibeflow.services.moods import mood_from_expressions

router = APIRouter(prefix="/api/mood", tags=["Mood"])


@router.post(
    "",
    summary="Resolve a mood from expressions",
    response_model=MoodDetectionResponse,
    responses={200: {"description": "Mood for the dominant expression"}},
)
def detect_mood(data: MoodDetectionRequest) -> MoodDetectionResponse:
    """
    Pick the dominant expression and return the mood used for music queries.

    Expressions outside the mood set (or an empty payload) resolve to the default mood.
    """
    mood, expression, confidence = mood_from_expressions(data.expressions)
    return MoodDetectionResponse(mood=mood, expression=expression, confidence=confidence)
