# app/core/cache.py
import json
from dataclasses import dataclass
from datetime import timedelta

import redis

from app.core.errors import AppError, ErrorCode
from app.core.tokens import OAUTH_STATE_TTL, OAUTH_STATE_USED_TTL
from app.schemas.cart import CartLine

REFRESH_TOKEN_PREFIX = "refresh_token:"
REFRESH_LOOKUP_PREFIX = "refresh_token_lookup:"
OAUTH_STATE_PREFIX = "oauth_state:"
OAUTH_STATE_VALID = "valid"
GUEST_CART_PREFIX = "guest_cart:"
GUEST_CART_TTL = timedelta(days=7)


def create_redis_client(url: str) -> redis.Redis:
    """
    Build a Redis client from a redis:// URL.

    No connection is opened until the first command.
    """
    return redis.Redis.from_url(url, decode_responses=True)


@dataclass
class RefreshTokenData:
    token: str
    provider: str


class SessionStore:
    """
    Cache-backed session state.

    Keys:
      - refresh_token:<user_id>        -> {"token": ..., "provider": ...}
      - refresh_token_lookup:<token>   -> <user_id>
      - oauth_state:<state>            -> "valid"

    Every Redis failure is raised as AppError(redis_error).
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    # ----- Refresh tokens -----

    def store_refresh_token(
        self,
        user_id: str,
        token: str,
        provider: str,
        ttl: timedelta,
    ) -> None:
        value = json.dumps({"token": token, "provider": provider})
        try:
            self.client.set(f"{REFRESH_TOKEN_PREFIX}{user_id}", value, ex=ttl)
            self.client.set(f"{REFRESH_LOOKUP_PREFIX}{token}", user_id, ex=ttl)
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to store refresh token", e) from e

    def get_refresh_token(self, user_id: str) -> RefreshTokenData | None:
        """None when nothing is stored or the stored value is unusable."""
        try:
            raw = self.client.get(f"{REFRESH_TOKEN_PREFIX}{user_id}")
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to read refresh token", e) from e

        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get("token"):
            return None
        return RefreshTokenData(token=data["token"], provider=data.get("provider", "local"))

    def user_id_for_token(self, token: str) -> str | None:
        try:
            return self.client.get(f"{REFRESH_LOOKUP_PREFIX}{token}") or None
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to look up refresh token", e) from e

    def delete_refresh_token(self, user_id: str) -> None:
        key = f"{REFRESH_TOKEN_PREFIX}{user_id}"
        try:
            raw = self.client.get(key)
            keys = [key]
            if raw:
                try:
                    keys.append(f"{REFRESH_LOOKUP_PREFIX}{json.loads(raw)['token']}")
                except (ValueError, KeyError, TypeError):
                    pass
            self.client.delete(*keys)
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to delete refresh token", e) from e

    # ----- OAuth state -----

    def save_oauth_state(self, state: str) -> None:
        try:
            self.client.set(f"{OAUTH_STATE_PREFIX}{state}", OAUTH_STATE_VALID, ex=OAUTH_STATE_TTL)
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to store OAuth state", e) from e

    def consume_oauth_state(self, state: str) -> bool:
        """
        True if `state` was issued by us and is still live.

        A matching state is cut down to a one minute lifetime.
        """
        key = f"{OAUTH_STATE_PREFIX}{state}"
        try:
            value = self.client.get(key)
            if value != OAUTH_STATE_VALID:
                return False
            self.client.expire(key, OAUTH_STATE_USED_TTL)
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to check OAuth state", e) from e
        return True


class GuestCartStore:
    """
    Carts of anonymous visitors, keyed by the guest session cookie.

    Key: guest_cart:<session_id> -> {"items": [CartLine, ...]}
    Every write pushes the expiry out to GUEST_CART_TTL.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    def load(self, session_id: str) -> list[CartLine]:
        """Stored lines; an unknown or unreadable cart is empty."""
        try:
            raw = self.client.get(f"{GUEST_CART_PREFIX}{session_id}")
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to get guest cart", e) from e

        if not raw:
            return []
        try:
            return [CartLine.model_validate(line) for line in json.loads(raw)["items"]]
        except (ValueError, KeyError, TypeError):
            return []

    def save(self, session_id: str, lines: list[CartLine]) -> None:
        value = json.dumps({"items": [line.model_dump(mode="json") for line in lines]})
        try:
            self.client.set(f"{GUEST_CART_PREFIX}{session_id}", value, ex=GUEST_CART_TTL)
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to save guest cart", e) from e

    def delete(self, session_id: str) -> None:
        try:
            self.client.delete(f"{GUEST_CART_PREFIX}{session_id}")
        except redis.RedisError as e:
            raise AppError(ErrorCode.CACHE_ERROR, "Failed to delete guest cart", e) from e
