# tests/test_auth_api.py
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime

from app.core.oauth import GoogleUserInfo

SIGNUP = {"name": "alice", "email": "alice@example.com", "password": "supersecret1"}


def _set_cookies(response) -> dict[str, str]:
    """Set-Cookie headers keyed by cookie name."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def _expires(header: str) -> datetime:
    match = re.search(r"expires=([^;]+)", header, re.IGNORECASE)
    return parsedate_to_datetime(match.group(1))


def _assert_cleared(response):
    cookies = _set_cookies(response)
    now = datetime.now(timezone.utc)
    for name in ("access_token", "refresh_token"):
        assert name in cookies
        assert _expires(cookies[name]) < now


# ----- Local accounts -----


def test_signup_sets_session_cookies(client):
    response = client.post("/v1/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    assert response.json() == {"message": "Signup successful"}
    cookies = _set_cookies(response)
    for name in ("access_token", "refresh_token"):
        assert "HttpOnly" in cookies[name]
        assert "Path=/" in cookies[name]
        assert "samesite=lax" in cookies[name].lower()

    now = datetime.now(timezone.utc)
    assert _expires(cookies["access_token"]) <= now + timedelta(minutes=31)
    assert _expires(cookies["refresh_token"]) > now + timedelta(days=6)


def test_cookie_session_reaches_protected_routes(client):
    client.post("/v1/auth/signup", json=SIGNUP)

    response = client.get("/v1/users/")

    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"


def test_signup_duplicate_email_is_400(client):
    client.post("/v1/auth/signup", json=SIGNUP)
    response = client.post("/v1/auth/signup", json={**SIGNUP, "name": "alice2"})

    assert response.status_code == 400
    assert response.json() == {"error": "An account with this email already exists"}


def test_signup_malformed_body(client):
    response = client.post("/v1/auth/signup", json={"name": "alice"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request payload"}


def test_signin(client):
    client.post("/v1/auth/signup", json=SIGNUP)
    client.cookies.clear()

    response = client.post(
        "/v1/auth/signin",
        json={"email": SIGNUP["email"], "password": SIGNUP["password"]},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Signin successful"}
    assert {"access_token", "refresh_token"} <= set(_set_cookies(response))


def test_signin_wrong_password(client):
    client.post("/v1/auth/signup", json=SIGNUP)
    response = client.post(
        "/v1/auth/signin",
        json={"email": SIGNUP["email"], "password": "not-the-password"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid credentials"}


# ----- Sessions -----


def test_refresh_rotates_cookie(client):
    client.post("/v1/auth/signup", json=SIGNUP)
    old_refresh = client.cookies.get("refresh_token")

    response = client.post("/v1/auth/refresh")

    assert response.status_code == 200
    assert client.cookies.get("refresh_token") != old_refresh


def test_refresh_without_cookie_is_401(client):
    response = client.post("/v1/auth/refresh")

    assert response.status_code == 401
    assert response.json() == {"error": "Refresh token not found"}


def test_local_signout_clears_cookies(client, store, tokens):
    client.post("/v1/auth/signup", json=SIGNUP)
    user_id = tokens.parse_refresh_token(client.cookies.get("refresh_token"))

    response = client.post("/v1/auth/signout")

    assert response.status_code == 200
    assert response.json() == {"message": "Sign out successful"}
    _assert_cleared(response)
    assert store.get_refresh_token(user_id) is None


def test_google_signout_redirects_to_revoke(client, store, redis_client, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "g-refresh-token", "google", timedelta(days=7))
    client.cookies.set("refresh_token", "g-refresh-token")

    response = client.post("/v1/auth/signout", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == (
        "https://accounts.google.com/o/oauth2/revoke?token=g-refresh-token"
    )
    _assert_cleared(response)
    assert redis_client.get(f"refresh_token:{user.id}") is None
    assert redis_client.get("refresh_token_lookup:g-refresh-token") is None


# ----- Google OAuth -----


def test_google_signin_redirects(client, google):
    google.auth_code_url.return_value = "https://accounts.google.com/o/oauth2/auth?state=s"

    response = client.get("/v1/auth/google/signin", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "https://accounts.google.com/o/oauth2/auth?state=s"


def test_google_callback_lands_on_frontend(client, settings, store, google):
    store.save_oauth_state("s1")
    google.exchange_code.return_value = {"access_token": "ya29", "refresh_token": "g-rt"}
    google.fetch_user_info.return_value = GoogleUserInfo(id="g-1", email="gina@example.com", name="Gina")

    response = client.get(
        "/v1/auth/google/callback",
        params={"state": "s1", "code": "abc"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == settings.FRONTEND_URL
    assert _set_cookies(response)["refresh_token"].startswith("refresh_token=g-rt")


def test_google_callback_reprompts_for_consent(client, store, google):
    store.save_oauth_state("s1")
    google.exchange_code.return_value = {"access_token": "ya29"}
    google.fetch_user_info.return_value = GoogleUserInfo(id="g-1", email="gina@example.com", name="Gina")
    google.auth_code_url.return_value = "https://accounts.google.com/consent"

    response = client.get(
        "/v1/auth/google/callback",
        params={"state": "s1", "code": "abc"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == "https://accounts.google.com/consent"
    assert "set-cookie" not in response.headers


def test_google_callback_bad_state(client):
    response = client.get(
        "/v1/auth/google/callback",
        params={"state": "forged", "code": "abc"},
        follow_redirects=False,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid state parameter"}
