from urllib.parse import parse_qs, urlparse

from vibeflow.core.config import get_settings
from vibeflow.core.security import read_session_value


def _set_cookie_names(response):
    return [header.split("=", 1)[0] for header in response.headers.get_list("set-cookie")]


def _set_cookie_header(response, name):
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


def test_login_redirects_with_state_matching_cookie(client):
    response = client.get("/api/auth/login", follow_redirects=False)

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.netloc == "accounts.spotify.com"
    assert location.path == "/authorize"
    query = parse_qs(location.query)
    assert query["response_type"] == ["code"]
    assert query["client_id"] == ["test-client"]
    assert "user-top-read" in query["scope"][0]

    state = query["state"][0]
    assert len(state) == 16
    assert response.cookies.get("spotify_auth_state") == state
    header = _set_cookie_header(response, "spotify_auth_state").lower()
    assert "httponly" in header
    assert "max-age=600" in header


def test_login_generates_fresh_state_each_time(client):
    first = client.get("/api/auth/login", follow_redirects=False).cookies.get("spotify_auth_state")
    second = client.get("/api/auth/login", follow_redirects=False).cookies.get("spotify_auth_state")
    assert first != second


def test_callback_state_mismatch_redirects_without_tokens(client, spotify):
    client.cookies.set("spotify_auth_state", "expected-state")

    response = client.get("/api/auth/callback?code=abc&state=other-state", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://testserver/vibe?error=state_mismatch"
    names = _set_cookie_names(response)
    assert "spotify_access_token" not in names
    assert "spotify_refresh_token" not in names
    assert spotify.requests == []


def test_callback_without_state_cookie_is_mismatch(client):
    response = client.get("/api/auth/callback?code=abc&state=anything", follow_redirects=False)
    assert "error=state_mismatch" in response.headers["location"]


def test_callback_provider_error_is_access_denied(client):
    client.cookies.set("spotify_auth_state", "s1")
    response = client.get("/api/auth/callback?error=access_denied&state=s1", follow_redirects=False)
    assert response.headers["location"].endswith("/vibe?error=access_denied")


def test_callback_missing_code(client):
    client.cookies.set("spotify_auth_state", "s1")
    response = client.get("/api/auth/callback?state=s1", follow_redirects=False)
    assert response.headers["location"].endswith("/vibe?error=no_code")


def test_callback_success_sets_session_cookies(client, spotify):
    spotify.on("POST", "/api/token", json={
        "access_token": "user-access",
        "refresh_token": "user-refresh",
        "expires_in": 3600,
        "token_type": "Bearer",
    })
    spotify.on("GET", "/v1/me", json={"id": "u1", "display_name": "Dee"})
    client.cookies.set("spotify_auth_state", "s1")

    response = client.get("/api/auth/callback?code=the-code&state=s1", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://testserver/vibe?login=success"
    assert read_session_value(response.cookies.get("spotify_access_token")) == "user-access"
    assert read_session_value(response.cookies.get("spotify_refresh_token")) == "user-refresh"
    assert response.cookies.get("spotify_user_name") == "Dee"

    access_header = _set_cookie_header(response, "spotify_access_token").lower()
    assert "httponly" in access_header
    assert "max-age=3600" in access_header
    assert "httponly" not in _set_cookie_header(response, "spotify_user_name").lower()

    token_request = spotify.calls("/api/token")[0]
    assert token_request.headers["authorization"].startswith("Basic ")
    form = parse_qs(token_request.content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["the-code"]
    assert form["redirect_uri"] == ["http://testserver/api/auth/callback"]


def test_callback_falls_back_to_user_id_for_name(client, spotify):
    spotify.on("POST", "/api/token", json={"access_token": "a", "refresh_token": "r", "expires_in": 3600})
    spotify.on("GET", "/v1/me", json={"id": "u1", "display_name": None})
    client.cookies.set("spotify_auth_state", "s1")

    response = client.get("/api/auth/callback?code=c&state=s1", follow_redirects=False)

    assert response.cookies.get("spotify_user_name") == "u1"


def test_callback_token_exchange_failure(client, spotify):
    spotify.on("POST", "/api/token", status_code=400, json={"error": "invalid_grant"})
    client.cookies.set("spotify_auth_state", "s1")

    response = client.get("/api/auth/callback?code=bad&state=s1", follow_redirects=False)

    assert response.headers["location"].endswith("/vibe?error=token_exchange_failed")
    assert "spotify_access_token" not in _set_cookie_names(response)


def test_callback_malformed_token_body(client, spotify):
    spotify.on("POST", "/api/token", json={"unexpected": True})
    client.cookies.set("spotify_auth_state", "s1")

    response = client.get("/api/auth/callback?code=c&state=s1", follow_redirects=False)

    assert response.headers["location"].endswith("/vibe?error=token_exchange_failed")


def test_callback_missing_secret(client, spotify, monkeypatch):
    monkeypatch.setattr(get_settings(), "SPOTIFY_CLIENT_SECRET", None)
    client.cookies.set("spotify_auth_state", "s1")

    response = client.get("/api/auth/callback?code=c&state=s1", follow_redirects=False)

    assert response.headers["location"].endswith("/vibe?error=token_exchange_failed")
    assert spotify.requests == []


def test_logout_clears_cookies(client):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    names = _set_cookie_names(response)
    for name in ("spotify_access_token", "spotify_refresh_token", "spotify_user_name", "spotify_auth_state"):
        assert name in names
