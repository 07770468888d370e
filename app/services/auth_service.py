# app/services/auth_service.py
import re
from dataclasses import dataclass

import httpx
from authlib.integrations.httpx_client import OAuthError
from jose import JWTError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.cache import RefreshTokenData, SessionStore
from app.core.errors import AppError, ErrorCode
from app.core.oauth import GoogleOAuthClient, GoogleUserInfo, google_revoke_url
from app.core.security import (
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    check_password_hash,
    generate_state,
    hash_password,
    is_valid_email,
    is_valid_password,
    is_valid_username,
)
from app.core.tokens import (
    REFRESH_TOKEN_TTL,
    InvalidTokenError,
    TokenManager,
    TokenPair,
)
from app.database import SessionFactory, commit, transaction
from app.models.user import User, utcnow
from app.repositories.user_repo import UserRepository
from app.schemas.auth import SignInRequest, SignUpRequest

PROVIDER_LOCAL = "local"
PROVIDER_GOOGLE = "google"


@dataclass
class AuthResult:
    user_id: str
    provider: str
    tokens: TokenPair


@dataclass
class GoogleCallbackResult:
    """
    Outcome of the OAuth callback.

    Exactly one field is set: `auth` on success, `consent_url` when Google
    has to be asked again for an offline refresh token.
    """

    auth: AuthResult | None = None
    consent_url: str | None = None


@dataclass
class SignOutResult:
    user_id: str
    provider: str
    revoke_url: str | None = None


def _username_from_google(info: GoogleUserInfo) -> str:
    """Display name, else the email's local part, squeezed into a valid username."""
    for raw in (info.name, info.email.split("@", 1)[0]):
        base = re.sub(r"[^a-zA-Z0-9]+", "", raw)[:USERNAME_MAX_LENGTH]
        if len(base) >= USERNAME_MIN_LENGTH:
            return base
    suffix = re.sub(r"[^a-zA-Z0-9]+", "", info.id)
    return f"user{suffix}"[:USERNAME_MAX_LENGTH]


class AuthService:
    """
    Sign-up, sign-in, Google OAuth, token refresh and sign-out.

    Responsibilities:
      - validate credentials and keep user rows in sync with the provider
      - issue access/refresh token pairs
      - keep the server-side copy of each refresh token in the cache

    The router turns results into cookies and redirects; this class never
    touches HTTP objects.
    """

    def __init__(
        self,
        repo: UserRepository | None,
        session_factory: SessionFactory | None,
        tokens: TokenManager,
        store: SessionStore | None,
        google: GoogleOAuthClient | None = None,
    ):
        self.repo = repo
        self.session_factory = session_factory
        self.tokens = tokens
        self.store = store
        self.google = google

    # ----- Guards -----

    def _require_db(self) -> None:
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    def _require_store(self) -> SessionStore:
        if self.store is None:
            raise AppError(ErrorCode.PROVIDER_NOT_CONFIGURED, "Session cache is not configured")
        return self.store

    def _require_google(self) -> GoogleOAuthClient:
        if self.google is None:
            raise AppError(ErrorCode.PROVIDER_NOT_CONFIGURED, "Google sign-in is not configured")
        return self.google

    def _issue_tokens(self, user_id: str) -> TokenPair:
        try:
            return self.tokens.generate_tokens(user_id)
        except JWTError as e:
            raise AppError(ErrorCode.TOKEN_GENERATION_ERROR, "Error generating tokens", e) from e

    # ----- Local accounts -----

    def sign_up(self, payload: SignUpRequest) -> AuthResult:
        """
        Create a local account and open a session for it.

        Name/email uniqueness is checked inside the insert's transaction;
        the unique email index catches anything that slips through.
        """
        if not payload.name or not payload.email or not payload.password:
            raise AppError(ErrorCode.INVALID_REQUEST, "Name, email and password are required")
        if not is_valid_username(payload.name):
            raise AppError(ErrorCode.INVALID_REQUEST, "Invalid username format")
        if not is_valid_email(payload.email):
            raise AppError(ErrorCode.INVALID_REQUEST, "Invalid email format")
        if not is_valid_password(payload.password):
            raise AppError(ErrorCode.INVALID_REQUEST, "Password must be longer than 8 characters")
        self._require_db()
        store = self._require_store()

        with transaction(self.session_factory) as session:
            try:
                name_taken = self.repo.name_exists(session, payload.name)
                email_taken = not name_taken and self.repo.email_exists(session, payload.email)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Error checking existing users", e) from e
            if name_taken:
                raise AppError(ErrorCode.NAME_EXISTS, "An account with this name already exists")
            if email_taken:
                raise AppError(ErrorCode.EMAIL_EXISTS, "An account with this email already exists")

            try:
                hashed = hash_password(payload.password)
            except ValueError as e:
                raise AppError(ErrorCode.HASH_ERROR, "Error hashing password", e) from e

            user = User(
                name=payload.name,
                email=payload.email,
                password=hashed,
                provider=PROVIDER_LOCAL,
            )
            try:
                self.repo.create(session, user)
            except IntegrityError as e:
                raise AppError(ErrorCode.USER_EXISTS, "An account with this name or email already exists", e) from e
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CREATE_USER_ERROR, "Error creating user", e) from e

            user_id = str(user.id)
            pair = self._issue_tokens(user_id)
            store.store_refresh_token(user_id, pair.refresh_token, PROVIDER_LOCAL, REFRESH_TOKEN_TTL)
            commit(session)

        return AuthResult(user_id=user_id, provider=PROVIDER_LOCAL, tokens=pair)

    def sign_in(self, payload: SignInRequest) -> AuthResult:
        """
        Verify email/password and open a new session.

        Unknown email and wrong password are reported identically.
        """
        if not payload.email or not payload.password:
            raise AppError(ErrorCode.INVALID_REQUEST, "Email and password are required")
        self._require_db()
        store = self._require_store()

        with transaction(self.session_factory) as session:
            try:
                user = self.repo.get_by_email(session, payload.email)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Error looking up user", e) from e
            if user is None or not check_password_hash(payload.password, user.password):
                raise AppError(ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")

            user_id = str(user.id)
            pair = self._issue_tokens(user_id)

            user.provider = PROVIDER_LOCAL
            user.updated_at = utcnow()
            try:
                self.repo.update(session, user)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_USER_ERROR, "Error updating user status", e) from e

            store.store_refresh_token(user_id, pair.refresh_token, PROVIDER_LOCAL, REFRESH_TOKEN_TTL)
            commit(session)

        return AuthResult(user_id=user_id, provider=PROVIDER_LOCAL, tokens=pair)

    # ----- Google OAuth -----

    def google_signin_url(self) -> str:
        """Store a fresh state and return the consent URL to redirect to."""
        google = self._require_google()
        store = self._require_store()

        state = generate_state()
        store.save_oauth_state(state)
        return google.auth_code_url(state)

    def handle_google_callback(self, state: str | None, code: str | None) -> GoogleCallbackResult:
        """
        Finish the OAuth round trip.

        Steps:
          1. Check `state` against the cache (its TTL drops to 1 minute).
          2. Exchange `code` for a Google token and fetch the profile.
          3. Find the user by email, creating a google-provider row if absent.
          4. Pick the refresh token: cached one, else Google's, else ask
             for consent again (nothing is committed in that case).
          5. Store the refresh token and commit.
        """
        google = self._require_google()
        store = self._require_store()
        self._require_db()

        if not state or not store.consume_oauth_state(state):
            raise AppError(ErrorCode.INVALID_STATE, "Invalid state parameter")
        if not code:
            raise AppError(ErrorCode.INVALID_REQUEST, "Missing authorization code")

        try:
            google_token = google.exchange_code(code)
        except (OAuthError, httpx.HTTPError) as e:
            raise AppError(ErrorCode.TOKEN_EXCHANGE_ERROR, "Failed to exchange token", e) from e

        try:
            info = google.fetch_user_info(google_token)
        except (OAuthError, httpx.HTTPError, ValueError) as e:
            raise AppError(ErrorCode.GOOGLE_API_ERROR, "Failed to get user info", e) from e
        if not info.email:
            raise AppError(ErrorCode.GOOGLE_API_ERROR, "Google account has no email")

        with transaction(self.session_factory) as session:
            try:
                user = self.repo.get_by_email(session, info.email)
                if user is None:
                    user = User(
                        name=_username_from_google(info),
                        email=info.email,
                        provider=PROVIDER_GOOGLE,
                        provider_id=info.id,
                    )
                    self.repo.create(session, user)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CREATE_USER_ERROR, "Error creating user", e) from e

            user_id = str(user.id)

            cached = store.get_refresh_token(user_id)
            if cached is not None and cached.provider == PROVIDER_GOOGLE:
                refresh_token = cached.token
            else:
                refresh_token = google_token.get("refresh_token") or ""
            if not refresh_token:
                retry_state = generate_state()
                store.save_oauth_state(retry_state)
                return GoogleCallbackResult(
                    consent_url=google.auth_code_url(retry_state, force_consent=True)
                )

            pair = self._issue_tokens(user_id)
            pair.refresh_token = refresh_token

            user.provider = PROVIDER_GOOGLE
            user.provider_id = info.id
            user.updated_at = utcnow()
            try:
                self.repo.update(session, user)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_USER_ERROR, "Error updating user status", e) from e

            store.store_refresh_token(user_id, refresh_token, PROVIDER_GOOGLE, REFRESH_TOKEN_TTL)
            commit(session)

        return GoogleCallbackResult(
            auth=AuthResult(user_id=user_id, provider=PROVIDER_GOOGLE, tokens=pair)
        )

    # ----- Sessions -----

    def validate_refresh_token(self, refresh_token: str | None) -> tuple[str, RefreshTokenData]:
        """
        Resolve a refresh-token cookie to its user and cached entry.

        Locally issued tokens carry a signed user id; Google refresh tokens
        are resolved through the cache lookup key.

        Raises:
            AppError(invalid_token): unknown, forged or superseded token.
        """
        store = self._require_store()
        if not refresh_token:
            raise AppError(ErrorCode.INVALID_TOKEN, "Refresh token not found")

        try:
            user_id = self.tokens.parse_refresh_token(refresh_token)
        except InvalidTokenError:
            user_id = store.user_id_for_token(refresh_token)
            if not user_id:
                raise AppError(ErrorCode.INVALID_TOKEN, "Invalid refresh token")

        stored = store.get_refresh_token(user_id)
        if stored is None or stored.token != refresh_token:
            raise AppError(ErrorCode.INVALID_TOKEN, "Invalid session")
        return user_id, stored

    def refresh(self, refresh_token: str | None) -> AuthResult:
        """
        Rotate the session behind a refresh-token cookie.

        - google: ask Google for a new access token through the stored
          refresh token, keep (or rotate) that refresh token and issue a
          new local access token
        - local: drop the old entry and issue a brand new pair
        """
        user_id, stored = self.validate_refresh_token(refresh_token)
        store = self._require_store()

        if stored.provider == PROVIDER_GOOGLE:
            google = self._require_google()
            try:
                new_token = google.refresh(stored.token)
            except (OAuthError, httpx.HTTPError) as e:
                raise AppError(ErrorCode.GOOGLE_TOKEN_ERROR, "Failed to refresh Google token", e) from e
            if not new_token.get("access_token"):
                raise AppError(ErrorCode.GOOGLE_TOKEN_ERROR, "Google returned no access token")

            pair = self._issue_tokens(user_id)
            pair.refresh_token = new_token.get("refresh_token") or stored.token
            store.delete_refresh_token(user_id)
            store.store_refresh_token(user_id, pair.refresh_token, PROVIDER_GOOGLE, REFRESH_TOKEN_TTL)
            return AuthResult(user_id=user_id, provider=PROVIDER_GOOGLE, tokens=pair)

        store.delete_refresh_token(user_id)
        pair = self._issue_tokens(user_id)
        store.store_refresh_token(user_id, pair.refresh_token, PROVIDER_LOCAL, REFRESH_TOKEN_TTL)
        return AuthResult(user_id=user_id, provider=PROVIDER_LOCAL, tokens=pair)

    def sign_out(self, refresh_token: str | None) -> SignOutResult:
        """
        End the session. Google sessions also get a revoke URL for the
        stored provider token.
        """
        user_id, stored = self.validate_refresh_token(refresh_token)
        self._require_store().delete_refresh_token(user_id)

        result = SignOutResult(user_id=user_id, provider=stored.provider)
        if stored.provider == PROVIDER_GOOGLE:
            result.revoke_url = google_revoke_url(stored.token)
        return result

