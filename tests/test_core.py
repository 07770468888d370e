# tests/test_core.py
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.requests import Request

from app.core.errors import (
    ERROR_STATUS,
    GENERIC_SERVER_MESSAGE,
    AppError,
    ErrorCode,
    http_status_for,
    public_message,
)
from app.core.lazy import LazyService
from app.core.request_meta import get_ip_address, get_request_metadata
from app.core.security import (
    check_password_hash,
    generate_state,
    hash_password,
    is_valid_email,
    is_valid_password,
    is_valid_username,
)
from app.core.tokens import InvalidTokenError, TokenManager
from app.database import _normalize_url, commit, read_session, transaction


# ----- Error table -----


def test_every_error_code_has_a_status():
    assert set(ERROR_STATUS) == set(ErrorCode)


@pytest.mark.parametrize(
    "code, status",
    [
        (ErrorCode.INVALID_REQUEST, 400),
        (ErrorCode.CATEGORY_NOT_FOUND, 404),
        (ErrorCode.PRODUCT_NOT_FOUND, 404),
        (ErrorCode.USER_NOT_FOUND, 404),
        (ErrorCode.TRANSACTION_ERROR, 500),
        (ErrorCode.COMMIT_ERROR, 500),
        (ErrorCode.DATABASE_ERROR, 500),
        (ErrorCode.UNAUTHORIZED_USER, 403),
        (ErrorCode.ALREADY_ADMIN, 400),
        (ErrorCode.INVALID_TOKEN, 401),
        (ErrorCode.CART_EMPTY, 400),
        (ErrorCode.ITEM_NOT_FOUND, 404),
        (ErrorCode.REVIEW_NOT_FOUND, 404),
    ],
)
def test_status_for_code(code, status):
    assert http_status_for(code) == status


def test_client_errors_expose_message():
    err = AppError(ErrorCode.INVALID_REQUEST, "Category name is required")
    assert public_message(err) == "Category name is required"


def test_server_errors_hide_message():
    err = AppError(ErrorCode.COMMIT_ERROR, "Error committing transaction", RuntimeError("pg down"))
    assert public_message(err) == GENERIC_SERVER_MESSAGE
    assert "pg down" in str(err)


# ----- LazyService -----


def test_lazy_service_builds_once():
    factory = MagicMock(side_effect=lambda: object())
    lazy = LazyService(factory)

    assert not lazy.initialized
    first = lazy.get()
    assert lazy.get() is first
    assert lazy.initialized
    factory.assert_called_once()


def test_lazy_service_concurrent_get_builds_once():
    calls = []

    def slow_factory():
        calls.append(1)
        time.sleep(0.01)
        return object()

    lazy = LazyService(slow_factory)
    results = []
    threads = [threading.Thread(target=lambda: results.append(lazy.get())) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert all(r is results[0] for r in results)


def test_lazy_service_init_replaces_instance():
    lazy = LazyService(lambda: "default")
    assert lazy.get() == "default"
    assert lazy.init(lambda: "eager") == "eager"
    assert lazy.get() == "eager"


def test_lazy_service_init_propagates_builder_failure():
    def broken():
        raise RuntimeError("no database")

    lazy = LazyService(broken)
    with pytest.raises(RuntimeError):
        lazy.init()
    assert not lazy.initialized


# ----- Tokens -----


@pytest.fixture
def manager():
    return TokenManager("j" * 32, "r" * 32, "issuer", "audience")


def test_access_token_round_trip(manager):
    user_id = uuid.uuid4()
    expires = datetime.now(timezone.utc) + timedelta(minutes=5)
    claims = manager.validate_access_token(manager.generate_access_token(user_id, expires))

    assert claims["user_id"] == str(user_id)
    assert claims["iss"] == "issuer"
    assert claims["aud"] == "audience"


def test_expired_access_token_rejected(manager):
    expired = datetime.now(timezone.utc) - timedelta(minutes=1)
    token = manager.generate_access_token(uuid.uuid4(), expired)
    with pytest.raises(InvalidTokenError):
        manager.validate_access_token(token)


def test_access_token_from_other_audience_rejected(manager):
    other = TokenManager("j" * 32, "r" * 32, "issuer", "someone-else")
    token = other.generate_access_token(uuid.uuid4(), datetime.now(timezone.utc) + timedelta(minutes=5))
    with pytest.raises(InvalidTokenError):
        manager.validate_access_token(token)


def test_refresh_token_carries_signed_user_id(manager):
    user_id = uuid.uuid4()
    token = manager.generate_refresh_token(user_id)
    assert manager.parse_refresh_token(token) == str(user_id)


@pytest.mark.parametrize("token", ["", "a:b", "a:b:c:d", "::"])
def test_malformed_refresh_token_rejected(manager, token):
    with pytest.raises(InvalidTokenError):
        manager.parse_refresh_token(token)


def test_tampered_refresh_token_rejected(manager):
    user_id, nonce, signature = manager.generate_refresh_token(uuid.uuid4()).split(":")
    forged = f"{uuid.uuid4()}:{nonce}:{signature}"
    with pytest.raises(InvalidTokenError):
        manager.parse_refresh_token(forged)


def test_token_pair_expirations(manager):
    pair = manager.generate_tokens(uuid.uuid4())
    now = datetime.now(timezone.utc)
    assert timedelta(minutes=29) < pair.access_expires_at - now <= timedelta(minutes=30)
    assert timedelta(days=6) < pair.refresh_expires_at - now <= timedelta(days=7)


# ----- Validation helpers -----


@pytest.mark.parametrize("name", ["bob", "alice.smith", "a-b_c", "x" * 30])
def test_valid_usernames(name):
    assert is_valid_username(name)


@pytest.mark.parametrize("name", ["ab", "x" * 31, "bad name", "trailing-", "-leading", "a..b"])
def test_invalid_usernames(name):
    assert not is_valid_username(name)


@pytest.mark.parametrize("email", ["user@example.com", "first.last+tag@sub.example.org"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["plain", "user@host", "user..dots@example.com", "@example.com"])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_password_bounds():
    assert not is_valid_password("12345678")
    assert is_valid_password("123456789")
    assert not is_valid_password("x" * 73)


def test_password_hash_round_trip():
    hashed = hash_password("correct horse battery")
    assert check_password_hash("correct horse battery", hashed)
    assert not check_password_hash("wrong password!", hashed)


def test_check_password_hash_tolerates_missing_or_malformed():
    assert not check_password_hash("whatever1", None)
    assert not check_password_hash("whatever1", "not-a-bcrypt-hash")


def test_hash_password_rejects_short_password():
    with pytest.raises(ValueError):
        hash_password("short")


def test_generate_state_is_random():
    assert generate_state() != generate_state()


# ----- Request metadata -----


def _request(headers: dict[str, str], client=("10.0.0.9", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


def test_ip_prefers_real_ip_header():
    req = _request({"X-Real-IP": "203.0.113.7", "X-Forwarded-For": "198.51.100.1"})
    assert get_ip_address(req) == "203.0.113.7"


def test_ip_uses_first_valid_forwarded_entry():
    req = _request({"X-Forwarded-For": "garbage, 198.51.100.1, 198.51.100.2"})
    assert get_ip_address(req) == "198.51.100.1"


def test_ip_falls_back_to_peer():
    req = _request({"X-Real-IP": "not-an-ip"})
    assert get_ip_address(req) == "10.0.0.9"


def test_request_metadata_includes_user_agent():
    req = _request({"User-Agent": "pytest-agent"}, client=None)
    assert get_request_metadata(req) == ("", "pytest-agent")


# ----- Database helpers -----


def test_remote_postgres_requires_ssl():
    assert _normalize_url("postgresql://u:p@db.example.com/shop") == (
        "postgresql://u:p@db.example.com/shop?sslmode=require"
    )
    assert _normalize_url("postgresql://u:p@db.example.com/shop?x=1").endswith("&sslmode=require")


def test_local_urls_untouched():
    assert _normalize_url("postgresql://u:p@localhost/shop") == "postgresql://u:p@localhost/shop"
    assert _normalize_url("sqlite://") == "sqlite://"


def test_transaction_without_factory():
    with pytest.raises(AppError) as exc:
        with transaction(None):
            pass
    assert exc.value.code == ErrorCode.TRANSACTION_ERROR


def test_transaction_factory_failure():
    factory = MagicMock(side_effect=OperationalError("connect", {}, Exception("refused")))
    with pytest.raises(AppError) as exc:
        with transaction(factory):
            pass
    assert exc.value.code == ErrorCode.TRANSACTION_ERROR


def test_transaction_always_rolls_back_and_closes():
    session = MagicMock()
    with pytest.raises(RuntimeError):
        with transaction(lambda: session):
            raise RuntimeError("boom")
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_commit_failure_is_commit_error():
    session = MagicMock()
    session.commit.side_effect = SQLAlchemyError("lost connection")
    with pytest.raises(AppError) as exc:
        commit(session)
    assert exc.value.code == ErrorCode.COMMIT_ERROR


def test_read_session_missing_factory_uses_given_code():
    with pytest.raises(AppError) as exc:
        with read_session(None, ErrorCode.TRANSACTION_ERROR):
            pass
    assert exc.value.code == ErrorCode.TRANSACTION_ERROR
