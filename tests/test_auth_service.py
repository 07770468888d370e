# tests/test_auth_service.py
from datetime import timedelta

import pytest
from authlib.integrations.httpx_client import OAuthError
from sqlmodel import select

from app.core.errors import AppError, ErrorCode
from app.core.oauth import GoogleUserInfo
from app.core.security import is_valid_username
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.auth import SignInRequest, SignUpRequest
from app.services.auth_service import AuthService, _username_from_google

PASSWORD = "supersecret1"


@pytest.fixture
def service(session_factory, tokens, store, google):
    return AuthService(UserRepository(), session_factory, tokens, store, google)


def _find_user(session_factory, email: str) -> User | None:
    with session_factory() as session:
        return session.exec(select(User).where(User.email == email)).first()


def _signup(service, name="alice", email="alice@example.com"):
    return service.sign_up(SignUpRequest(name=name, email=email, password=PASSWORD))


# ----- Local sign-up / sign-in -----


def test_sign_up_creates_user_and_session(service, session_factory, store):
    result = _signup(service)

    user = _find_user(session_factory, "alice@example.com")
    assert str(user.id) == result.user_id
    assert user.provider == "local"
    assert user.password and user.password != PASSWORD

    cached = store.get_refresh_token(result.user_id)
    assert cached.token == result.tokens.refresh_token
    assert cached.provider == "local"


def test_sign_up_duplicate_name(service):
    _signup(service)
    with pytest.raises(AppError) as exc:
        _signup(service, email="other@example.com")
    assert exc.value.code == ErrorCode.NAME_EXISTS


def test_sign_up_duplicate_email(service):
    _signup(service)
    with pytest.raises(AppError) as exc:
        _signup(service, name="alice2")
    assert exc.value.code == ErrorCode.EMAIL_EXISTS


@pytest.mark.parametrize(
    "name, email, password",
    [
        ("al", "alice@example.com", PASSWORD),
        ("alice", "alice@", PASSWORD),
        ("alice", "alice@example.com", "short"),
    ],
)
def test_sign_up_invalid_input(service, session_factory, name, email, password):
    with pytest.raises(AppError) as exc:
        service.sign_up(SignUpRequest(name=name, email=email, password=password))
    assert exc.value.code == ErrorCode.INVALID_REQUEST
    assert _find_user(session_factory, email) is None


def test_sign_in_issues_new_session(service, store, tokens):
    signed_up = _signup(service)

    result = service.sign_in(SignInRequest(email="alice@example.com", password=PASSWORD))

    assert result.user_id == signed_up.user_id
    assert tokens.validate_access_token(result.tokens.access_token)["user_id"] == result.user_id
    assert store.get_refresh_token(result.user_id).token == result.tokens.refresh_token


@pytest.mark.parametrize(
    "email, password",
    [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", PASSWORD),
    ],
)
def test_sign_in_bad_credentials(service, email, password):
    _signup(service)
    with pytest.raises(AppError) as exc:
        service.sign_in(SignInRequest(email=email, password=password))
    assert exc.value.code == ErrorCode.INVALID_CREDENTIALS


def test_sign_in_rejects_google_only_account(service, make_user):
    make_user(name="gina", email="gina@example.com", provider="google")
    with pytest.raises(AppError) as exc:
        service.sign_in(SignInRequest(email="gina@example.com", password=PASSWORD))
    assert exc.value.code == ErrorCode.INVALID_CREDENTIALS


def test_sign_up_without_cache(session_factory, tokens):
    service = AuthService(UserRepository(), session_factory, tokens, None)
    with pytest.raises(AppError) as exc:
        _signup(service)
    assert exc.value.code == ErrorCode.PROVIDER_NOT_CONFIGURED


# ----- Refresh -----


def test_local_refresh_rotates_token(service, store):
    first = _signup(service)

    refreshed = service.refresh(first.tokens.refresh_token)

    assert refreshed.provider == "local"
    assert refreshed.tokens.refresh_token != first.tokens.refresh_token
    assert store.get_refresh_token(first.user_id).token == refreshed.tokens.refresh_token

    with pytest.raises(AppError) as exc:
        service.refresh(first.tokens.refresh_token)
    assert exc.value.code == ErrorCode.INVALID_TOKEN


def test_refresh_rejects_unknown_token(service):
    with pytest.raises(AppError) as exc:
        service.refresh("not-a-token")
    assert exc.value.code == ErrorCode.INVALID_TOKEN


def test_refresh_rejects_missing_token(service):
    with pytest.raises(AppError) as exc:
        service.refresh(None)
    assert exc.value.code == ErrorCode.INVALID_TOKEN


def test_google_refresh_uses_provider(service, store, google, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "g-refresh", "google", timedelta(days=7))
    google.refresh.return_value = {"access_token": "ya29.new", "refresh_token": "g-refresh-2"}

    result = service.refresh("g-refresh")

    google.refresh.assert_called_once_with("g-refresh")
    assert result.provider == "google"
    assert result.tokens.refresh_token == "g-refresh-2"
    assert store.get_refresh_token(str(user.id)).token == "g-refresh-2"
    assert store.user_id_for_token("g-refresh") is None


def test_google_refresh_keeps_token_when_not_rotated(service, store, google, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "g-refresh", "google", timedelta(days=7))
    google.refresh.return_value = {"access_token": "ya29.new"}

    result = service.refresh("g-refresh")

    assert result.tokens.refresh_token == "g-refresh"
    assert store.user_id_for_token("g-refresh") == str(user.id)


def test_google_refresh_failure(service, store, google, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "g-refresh", "google", timedelta(days=7))
    google.refresh.side_effect = OAuthError(error="invalid_grant")

    with pytest.raises(AppError) as exc:
        service.refresh("g-refresh")
    assert exc.value.code == ErrorCode.GOOGLE_TOKEN_ERROR


# ----- Google OAuth -----


def test_google_signin_url_stores_state(service, google, redis_client):
    google.auth_code_url.return_value = "https://accounts.google.com/o/oauth2/auth?state=x"

    url = service.google_signin_url()

    assert url.startswith("https://accounts.google.com/")
    state = google.auth_code_url.call_args.args[0]
    assert redis_client.get(f"oauth_state:{state}") == "valid"


def test_callback_rejects_unknown_state(service, google):
    with pytest.raises(AppError) as exc:
        service.handle_google_callback("forged", "code")
    assert exc.value.code == ErrorCode.INVALID_STATE
    google.exchange_code.assert_not_called()


def test_callback_requires_code(service, store):
    store.save_oauth_state("s1")
    with pytest.raises(AppError) as exc:
        service.handle_google_callback("s1", None)
    assert exc.value.code == ErrorCode.INVALID_REQUEST


def test_callback_exchange_failure(service, store, google):
    store.save_oauth_state("s1")
    google.exchange_code.side_effect = OAuthError(error="invalid_grant")
    with pytest.raises(AppError) as exc:
        service.handle_google_callback("s1", "code")
    assert exc.value.code == ErrorCode.TOKEN_EXCHANGE_ERROR


def test_callback_creates_google_user(service, store, google, session_factory, redis_client):
    store.save_oauth_state("s1")
    google.exchange_code.return_value = {"access_token": "ya29", "refresh_token": "g-rt"}
    google.fetch_user_info.return_value = GoogleUserInfo(
        id="g-123", email="gina@example.com", name="Gina Lee", verified_email=True
    )

    result = service.handle_google_callback("s1", "code")

    assert result.consent_url is None
    user = _find_user(session_factory, "gina@example.com")
    assert user.name == "GinaLee"
    assert user.provider == "google"
    assert user.provider_id == "g-123"
    assert result.auth.tokens.refresh_token == "g-rt"
    assert store.get_refresh_token(str(user.id)).provider == "google"
    assert 0 < redis_client.ttl("oauth_state:s1") <= 60


def test_callback_prefers_cached_refresh_token(service, store, google, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "cached-rt", "google", timedelta(days=7))
    store.save_oauth_state("s1")
    google.exchange_code.return_value = {"access_token": "ya29", "refresh_token": "fresh-rt"}
    google.fetch_user_info.return_value = GoogleUserInfo(id="g-1", email="gina@example.com", name="Gina")

    result = service.handle_google_callback("s1", "code")

    assert result.auth.tokens.refresh_token == "cached-rt"


def test_callback_without_refresh_token_asks_for_consent(service, store, google, session_factory):
    store.save_oauth_state("s1")
    google.exchange_code.return_value = {"access_token": "ya29"}
    google.fetch_user_info.return_value = GoogleUserInfo(id="g-1", email="new@example.com", name="New")
    google.auth_code_url.return_value = "https://accounts.google.com/consent"

    result = service.handle_google_callback("s1", "code")

    assert result.auth is None
    assert result.consent_url == "https://accounts.google.com/consent"
    assert google.auth_code_url.call_args.kwargs == {"force_consent": True}
    # nothing is committed until Google hands over a refresh token
    assert _find_user(session_factory, "new@example.com") is None


def test_google_flow_without_provider(session_factory, tokens, store):
    service = AuthService(UserRepository(), session_factory, tokens, store, None)
    with pytest.raises(AppError) as exc:
        service.google_signin_url()
    assert exc.value.code == ErrorCode.PROVIDER_NOT_CONFIGURED


# ----- Sign-out -----


def test_local_sign_out_deletes_session(service, store):
    signed_up = _signup(service)

    result = service.sign_out(signed_up.tokens.refresh_token)

    assert result.provider == "local"
    assert result.revoke_url is None
    assert store.get_refresh_token(signed_up.user_id) is None


def test_google_sign_out_returns_revoke_url(service, store, make_user):
    user = make_user(name="gina", email="gina@example.com", provider="google")
    store.store_refresh_token(str(user.id), "g-refresh", "google", timedelta(days=7))

    result = service.sign_out("g-refresh")

    assert result.revoke_url == "https://accounts.google.com/o/oauth2/revoke?token=g-refresh"
    assert store.get_refresh_token(str(user.id)) is None


@pytest.mark.parametrize(
    ("name", "email", "expected"),
    [
        ("Gina Lee", "gina@example.com", "GinaLee"),
        ("", "first.last+shop@example.com", "firstlastshop"),
        ("Al", "al@example.com", "user123"),
        ("", "x" * 40 + "@example.com", "x" * 30),
    ],
)
def test_google_username_is_always_valid(name, email, expected):
    username = _username_from_google(GoogleUserInfo(id="123", email=email, name=name))

    assert username == expected
    assert is_valid_username(username)
