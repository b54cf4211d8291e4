import os
import random

# Settings are cached on first use; configure before the app is imported
os.environ.setdefault("SPOTIFY_CLIENT_ID", "test-client")
os.environ.setdefault("SPOTIFY_CLIENT_SECRET", "test-secret")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdef0123456789")
os.environ.setdefault("SPOTIFY_REDIRECT_URI", "http://testserver/api/auth/callback")

import httpx
import pytest
from fastapi.testclient import TestClient

from vibeflow.api.deps import get_http_client, get_rng
from vibeflow.api.main import app
from vibeflow.services.spotify_auth import clear_app_token_cache


class FakeSpotify:
    """Canned Spotify responses keyed by (method, path), recording every request."""

    def __init__(self):
        self.responses = {}
        self.requests = []

    def on(self, method, path, status_code=200, json=None):
        self.responses[(method, path)] = (status_code, json)

    def handler(self, request):
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.responses:
            return httpx.Response(404, json={"error": {"status": 404, "message": "not mocked"}})
        status_code, body = self.responses[key]
        return httpx.Response(status_code, json=body)

    def calls(self, path):
        return [r for r in self.requests if r.url.path == path]

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def _track(track_id, artist_id=None, artist_name=None, name=None):
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "artists": [{"id": artist_id or f"artist-{track_id}", "name": artist_name or f"Artist {track_id}"}],
        "album": {"id": f"album-{track_id}", "name": "Album", "images": [{"url": f"https://img/{track_id}.jpg"}]},
        "preview_url": None,
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
    }


def _features(track_id, valence=0.5, energy=0.5, danceability=0.5):
    return {"id": track_id, "valence": valence, "energy": energy, "danceability": danceability, "tempo": 120.0}


@pytest.fixture
def track_payload():
    return _track


@pytest.fixture
def features_payload():
    return _features


@pytest.fixture(autouse=True)
def _reset_token_cache():
    clear_app_token_cache()
    yield
    clear_app_token_cache()


@pytest.fixture
def spotify():
    return FakeSpotify()


@pytest.fixture
def client(spotify):
    async def _http_client():
        async with spotify.client() as c:
            yield c

    app.dependency_overrides[get_http_client] = _http_client
    app.dependency_overrides[get_rng] = lambda: random.Random(7)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
