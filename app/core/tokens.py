# app/core/tokens.py
import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

ACCESS_TOKEN_TTL = timedelta(minutes=30)
REFRESH_TOKEN_TTL = timedelta(days=7)
OAUTH_STATE_TTL = timedelta(minutes=10)
# Once a state has been checked it only lives long enough to finish the callback
OAUTH_STATE_USED_TTL = timedelta(minutes=1)

JWT_ALGORITHM = "HS256"


class InvalidTokenError(Exception):
    """Raised when an access or refresh token fails verification."""


@dataclass
class TokenPair:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


class TokenManager:
    """
    Issues and verifies session tokens.

    Access token:
      - HS256 JWT with claims user_id, iss, aud, iat, nbf, exp

    Refresh token:
      - "<user_id>:<random uuid>:<hex HMAC-SHA256 of the first two parts>"
      - opaque to clients; the server-side copy lives in the cache
    """

    def __init__(
        self,
        jwt_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
    ):
        self.jwt_secret = jwt_secret
        self.refresh_secret = refresh_secret
        self.issuer = issuer
        self.audience = audience

    # ----- Access tokens -----

    def generate_access_token(self, user_id: uuid.UUID | str, expires_at: datetime) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": str(user_id),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(claims, self.jwt_secret, algorithm=JWT_ALGORITHM)

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """
        Verify signature, issuer, audience and time claims.

        Raises:
            InvalidTokenError: on any verification failure.
        """
        try:
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        if not claims.get("user_id"):
            raise InvalidTokenError("token missing user_id")
        return claims

    # ----- Refresh tokens -----

    def _sign(self, payload: str) -> str:
        return hmac.new(
            self.refresh_secret.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def generate_refresh_token(self, user_id: uuid.UUID | str) -> str:
        payload = f"{user_id}:{uuid.uuid4()}"
        return f"{payload}:{self._sign(payload)}"

    def parse_refresh_token(self, token: str) -> str:
        """
        Return the user id embedded in a locally issued refresh token.

        Raises:
            InvalidTokenError: if the token is malformed or its signature
            does not match.
        """
        parts = token.split(":")
        if len(parts) != 3 or not all(parts):
            raise InvalidTokenError("malformed refresh token")

        user_id, nonce, signature = parts
        expected = self._sign(f"{user_id}:{nonce}")
        if not hmac.compare_digest(expected, signature):
            raise InvalidTokenError("refresh token signature mismatch")
        return user_id

    # ----- Pairs -----

    def generate_tokens(self, user_id: uuid.UUID | str) -> TokenPair:
        now = datetime.now(timezone.utc)
        access_expires_at = now + ACCESS_TOKEN_TTL
        return TokenPair(
            access_token=self.generate_access_token(user_id, access_expires_at),
            access_expires_at=access_expires_at,
            refresh_token=self.generate_refresh_token(user_id),
            refresh_expires_at=now + REFRESH_TOKEN_TTL,
        )
