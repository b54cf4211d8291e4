"""
Core configuration for the VibeFlow service.

Loads Spotify credentials, session signing keys and recommendation tuning from
environment variables. Uses Pydantic BaseSettings to support .env loading and
environment overrides.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Note: Values can be provided in a .env file or process env vars.
    """

    # Server
    API_HOST: str = Field(default="0.0.0.0", description="Host interface for FastAPI server")
    API_PORT: int = Field(default=8000, description="Port for FastAPI server")

    # CORS
    CORS_ORIGINS: List[AnyHttpUrl] | List[str] = Field(
        default=["*"],
        description="Allowed CORS origins. Provide as a JSON array or comma-separated string.",
    )

    # Spotify application credentials
    SPOTIFY_CLIENT_ID: str = Field(default="", description="Public Spotify application client id")
    SPOTIFY_CLIENT_SECRET: Optional[str] = Field(default=None, description="Confidential Spotify client secret")
    SPOTIFY_REDIRECT_URI: str = Field(
        default="http://localhost:8000/api/auth/callback",
        description="OAuth redirect URI registered with Spotify",
    )
    SPOTIFY_SCOPES: str = Field(
        default="user-top-read user-read-private user-read-email",
        description="Space separated OAuth scopes requested at login",
    )

    # Spotify endpoints
    SPOTIFY_ACCOUNTS_URL: str = Field(default="https://accounts.spotify.com", description="Spotify accounts service base URL")
    SPOTIFY_API_URL: str = Field(default="https://api.spotify.com/v1", description="Spotify Web API base URL")
    SPOTIFY_MARKET: str = Field(default="ID", description="Market (ISO country code) for recommendations")
    SPOTIFY_TIMEOUT_SECONDS: float = Field(default=10.0, description="Timeout for outbound Spotify calls")

    # Session cookies
    SESSION_SECRET: str = Field(default="change-me", description="Secret used to sign session cookies")
    SESSION_ALGORITHM: str = Field(default="HS256", description="JWT algorithm for signed cookies")
    APP_REDIRECT_PATH: str = Field(default="/vibe", description="Page the auth flow redirects back to")

    # Recommendations
    RECOMMENDATION_TARGET: int = Field(default=10, ge=1, le=10, description="Tracks returned by the personalized route")
    ANONYMOUS_TRACK_COUNT: int = Field(default=5, ge=1, le=10, description="Tracks returned by the anonymous route")

    # Observability / Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    OBS_ENABLED: bool = Field(default=True, description="Enable request tracing middleware")
    OBS_SERVICE_NAME: str = Field(default="vibeflow-api", description="Service name for logs")
    OBS_ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def cookie_secure(self) -> bool:
        """Cookies are only marked Secure in production."""
        return self.OBS_ENVIRONMENT.lower() == "production"

    @classmethod
    def parse_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Normalize CORS origins from env (list or comma-separated string) to a list of strings."""
        if isinstance(value, list):
            return [str(v) for v in value]
        if isinstance(value, str):
            v = value.strip()
            if v.startswith("[") and v.endswith("]"):
                v = v[1:-1]
            return [item.strip().strip('"').strip("'") for item in v.split(",") if item.strip()]
        return ["*"]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton Settings instance, with CORS origins normalized."""
    settings = Settings()  # type: ignore[call-arg]
    settings.CORS_ORIGINS = Settings.parse_cors_origins(settings.CORS_ORIGINS)  # type: ignore[assignment]
    return settings
