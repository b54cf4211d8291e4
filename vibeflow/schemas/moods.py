"""
Pydantic schemas for the mood and recommendation API payloads.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vibeflow.schemas.spotify import Track


class Mood(str, Enum):
    """Closed set of moods the client can infer from a face."""
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    NEUTRAL = "neutral"
    SURPRISED = "surprised"


class TracksResponse(BaseModel):
    tracks: List[Track] = Field(default_factory=list, description="Tracks matching the mood")


class PersonalizedResponse(BaseModel):
    tracks: List[Track] = Field(default_factory=list, description="History matches followed by recommendations")
    seedArtists: List[str] = Field(default_factory=list, description="Display names of the seeds used")
    debug: Optional[Dict[str, Any]] = Field(None, description="Seed selection details, only when requested")
    personalized: bool = True


class LogoutResponse(BaseModel):
    success: bool = True


class MoodDetectionRequest(BaseModel):
    expressions: Dict[str, float] = Field(
        default_factory=dict,
        description="Expression probabilities from the face model, e.g. {'happy': 0.91, 'neutral': 0.05}",
    )


class MoodDetectionResponse(BaseModel):
    mood: Mood
    expression: Optional[str] = Field(None, description="Highest ranked expression, if any")
    confidence: float = Field(0.0, description="Probability of the highest ranked expression")
