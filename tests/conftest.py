# tests/conftest.py
import os

# Settings are read when app.main is imported, so the environment has to be
# in place first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret-0123456789abcdef-0123"
os.environ["REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["COOKIE_SECURE"] = "false"
os.environ.pop("REDIS_URL", None)

from decimal import Decimal  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import create_engine  # noqa: E402

from app.core.cache import GuestCartStore, SessionStore  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.core.handlers_config import HandlersConfig  # noqa: E402
from app.core.oauth import GoogleOAuthClient  # noqa: E402
from app.core.stripe_client import StripeGateway  # noqa: E402
from app.core.tokens import TokenManager  # noqa: E402
from app.database import build_session_factory, create_db_and_tables  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.category import Category  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.user import User  # noqa: E402

FRONTEND_URL = "http://frontend.test"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        JWT_SECRET=os.environ["JWT_SECRET"],
        REFRESH_SECRET=os.environ["REFRESH_SECRET"],
        COOKIE_SECURE=False,
        FRONTEND_URL=FRONTEND_URL,
        STRIPE_SECRET_KEY="sk_test_dummy",
        STRIPE_WEBHOOK_SECRET="whsec_dummy",
    )


@pytest.fixture
def tokens(settings) -> TokenManager:
    return TokenManager(
        settings.JWT_SECRET,
        settings.REFRESH_SECRET,
        settings.ISSUER,
        settings.AUDIENCE,
    )


# ----- Persistence -----


@pytest.fixture
def engine():
    # One shared in-memory connection, usable from the TestClient threadpool
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client) -> SessionStore:
    return SessionStore(redis_client)


@pytest.fixture
def guest_carts(redis_client) -> GuestCartStore:
    return GuestCartStore(redis_client)


# ----- External providers -----


@pytest.fixture
def google():
    return MagicMock(spec=GoogleOAuthClient)


@pytest.fixture
def gateway():
    gw = MagicMock(spec=StripeGateway)
    gw.api_key = "sk_test_dummy"
    return gw


# ----- Application -----


@pytest.fixture
def handlers(settings, tokens, engine, session_factory, store, google, gateway, guest_carts) -> HandlersConfig:
    return HandlersConfig(
        settings=settings,
        tokens=tokens,
        engine=engine,
        session_factory=session_factory,
        store=store,
        google=google,
        stripe_gateway=gateway,
        guest_carts=guest_carts,
    )


@pytest.fixture
def client(handlers):
    with TestClient(create_app(handlers)) as c:
        yield c


# ----- Data helpers -----


@pytest.fixture
def make_user(session_factory):
    def _make(
        name: str = "alice",
        email: str | None = None,
        role: str = "user",
        provider: str = "local",
        password: str | None = None,
    ) -> User:
        user = User(
            name=name,
            email=email or f"{name}@example.com",
            role=role,
            provider=provider,
            password=password,
        )
        with session_factory() as session:
            session.add(user)
            session.commit()
            session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_category(session_factory):
    def _make(name: str = "Electronics", description: str | None = None) -> Category:
        category = Category(name=name, description=description)
        with session_factory() as session:
            session.add(category)
            session.commit()
            session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_product(session_factory, make_category):
    def _make(
        name: str = "Phone",
        price: str = "10.00",
        stock: int = 5,
        is_active: bool = True,
        category: Category | None = None,
    ) -> Product:
        category = category or make_category(name=f"cat-{name}")
        product = Product(
            category_id=category.id,
            name=name,
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
        )
        with session_factory() as session:
            session.add(product)
            session.commit()
            session.refresh(product)
        return product

    return _make


@pytest.fixture
def auth_headers(tokens):
    def _headers(user: User) -> dict[str, str]:
        pair = tokens.generate_tokens(user.id)
        return {"Authorization": f"Bearer {pair.access_token}"}

    return _headers
