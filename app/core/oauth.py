# app/core/oauth.py
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from authlib.integrations.httpx_client import OAuth2Client

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_REVOKE_URL = "https://accounts.google.com/o/oauth2/revoke"

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


@dataclass
class GoogleUserInfo:
    id: str
    email: str
    name: str
    verified_email: bool = False


def google_revoke_url(token: str) -> str:
    return f"{GOOGLE_REVOKE_URL}?{urlencode({'token': token})}"


class GoogleOAuthClient:
    """
    Thin wrapper over Authlib's httpx OAuth2 client for Google.

    Responsibilities:
      - build the consent URL (offline access, optional forced consent)
      - exchange an authorization code for a token
      - exchange a refresh token for a fresh access token
      - fetch the signed-in user's profile

    Failures propagate as `authlib` OAuthError or `httpx.HTTPError`;
    the auth service maps them to its own error codes.
    """

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def _client(self, token: dict[str, Any] | None = None) -> OAuth2Client:
        return OAuth2Client(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(GOOGLE_SCOPES),
            redirect_uri=self.redirect_uri,
            token=token,
        )

    def auth_code_url(self, state: str, force_consent: bool = False) -> str:
        params: dict[str, str] = {"access_type": "offline"}
        if force_consent:
            params["prompt"] = "consent"
        with self._client() as client:
            url, _ = client.create_authorization_url(GOOGLE_AUTH_URL, state=state, **params)
        return url

    def exchange_code(self, code: str) -> dict[str, Any]:
        with self._client() as client:
            return dict(client.fetch_token(GOOGLE_TOKEN_URL, code=code))

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        """
        Token-source refresh. The returned dict carries a new
        access_token and, when Google rotates it, a new refresh_token.
        """
        with self._client() as client:
            return dict(client.refresh_token(GOOGLE_TOKEN_URL, refresh_token=refresh_token))

    def fetch_user_info(self, token: dict[str, Any]) -> GoogleUserInfo:
        with self._client(token=token) as client:
            resp = client.get(GOOGLE_USERINFO_URL)
            resp.raise_for_status()
            data = resp.json()

        return GoogleUserInfo(
            id=str(data.get("id", "")),
            email=data.get("email", ""),
            name=data.get("name", ""),
            verified_email=bool(data.get("verified_email", False)),
        )
