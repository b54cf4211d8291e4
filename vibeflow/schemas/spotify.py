"""
Pydantic schemas for the Spotify Web API payloads consumed by VibeFlow.

Only the fields the service reads are declared; unknown keys are ignored and
missing lists default to empty so downstream code never handles raw JSON.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class Image(BaseModel):
    url: str = Field(..., description="Image URL")
    height: Optional[int] = Field(None, description="Height in pixels")
    width: Optional[int] = Field(None, description="Width in pixels")


class ArtistRef(BaseModel):
    """Simplified artist object embedded in tracks."""
    id: Optional[str] = Field(None, description="Spotify artist id")
    name: str = Field(..., description="Artist name")


class Album(BaseModel):
    id: Optional[str] = Field(None, description="Spotify album id")
    name: Optional[str] = Field(None, description="Album name")
    images: List[Image] = Field(default_factory=list, description="Cover art, largest first")


class Track(BaseModel):
    id: str = Field(..., description="Spotify track id")
    name: str = Field(..., description="Track title")
    artists: List[ArtistRef] = Field(default_factory=list, description="Credited artists")
    album: Album = Field(default_factory=Album, description="Album the track belongs to")
    preview_url: Optional[str] = Field(None, description="30 second preview, when available")
    external_urls: Dict[str, str] = Field(default_factory=dict, description="Links keyed by service")
    uri: Optional[str] = Field(None, description="Spotify URI")
    popularity: Optional[int] = Field(None, description="Popularity 0-100")

    @property
    def primary_artist(self) -> Optional[ArtistRef]:
        return self.artists[0] if self.artists else None

    @property
    def external_url(self) -> Optional[str]:
        return self.external_urls.get("spotify")


class AudioFeatures(BaseModel):
    id: str = Field(..., description="Track id the features describe")
    valence: float = Field(0.0, ge=0.0, le=1.0, description="Musical positiveness")
    energy: float = Field(0.0, ge=0.0, le=1.0, description="Perceived intensity")
    danceability: float = Field(0.0, ge=0.0, le=1.0, description="Suitability for dancing")
    tempo: Optional[float] = Field(None, description="Estimated BPM")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(3600, ge=0, description="Lifetime in seconds")
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class UserProfile(BaseModel):
    id: str
    display_name: Optional[str] = None
    country: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.id


# PUBLIC_INTERFACE
def parse_many(model: Type[ModelT], items: Iterable[Any], logger: Optional[logging.Logger] = None) -> List[ModelT]:
    """Validate a list of raw payload items, dropping (and logging) entries that do not fit the model.

    Null entries are skipped silently; the audio-features endpoint returns them for unknown ids.
    """
    parsed: List[ModelT] = []
    for item in items or []:
        if item is None:
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            if logger is not None:
                logger.warning(
                    "spotify.payload_invalid",
                    {"model": model.__name__, "errors": exc.error_count()},
                )
    return parsed
