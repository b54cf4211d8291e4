"""
Security utilities for the VibeFlow service.

Provides CSRF nonces for the OAuth login round trip and signing of the opaque
Spotify tokens stored in session cookies, using PyJWT with the configured
HS256 algorithm.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt  # PyJWT

from vibeflow.core.config import get_settings

STATE_LENGTH = 16


# PUBLIC_INTERFACE
def generate_state() -> str:
    """Generate a fresh random nonce for the OAuth `state` parameter."""
    return secrets.token_hex(STATE_LENGTH // 2)


# PUBLIC_INTERFACE
def states_match(expected: Optional[str], received: Optional[str]) -> bool:
    """Compare the stored and returned state in constant time. Empty values never match."""
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


# PUBLIC_INTERFACE
def sign_session_value(value: str, max_age: int) -> str:
    """Wrap an opaque session value in a signed JWT that expires after max_age seconds.

    Parameters:
    - value: provider token or other opaque string to protect.
    - max_age: lifetime in seconds, aligned with the cookie max-age.

    Returns:
    - Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=max_age)).timestamp()),
    }
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


# PUBLIC_INTERFACE
def read_session_value(signed: Optional[str]) -> Optional[str]:
    """Return the value wrapped by sign_session_value, or None if missing, tampered or expired."""
    if not signed:
        return None
    settings = get_settings()
    try:
        payload = jwt.decode(signed, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    value = payload.get("sub")
    return value if isinstance(value, str) and value else None
