# app/core/handlers_config.py
import logging

from fastapi import Request
from sqlalchemy.engine import Engine

from app.core.cache import GuestCartStore, SessionStore, create_redis_client
from app.core.config import Settings
from app.core.lazy import LazyService
from app.core.oauth import GoogleOAuthClient
from app.core.stripe_client import StripeGateway
from app.core.tokens import TokenManager
from app.database import SessionFactory, build_engine, build_session_factory
from app.repositories.cart_repo import CartRepository
from app.repositories.category_repo import CategoryRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import PaymentRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.cart_service import CartService
from app.services.category_service import CategoryService
from app.services.order_service import OrderService
from app.services.payment_service import PaymentService
from app.services.product_service import ProductService
from app.services.review_service import ReviewService
from app.services.user_service import UserService

logger = logging.getLogger("uvicorn.error")


class HandlersConfig:
    """
    Shared dependencies for every router, plus one lazily built service
    per domain.

    - `get_*_service()` builds on first use from whatever is configured;
      a missing dependency surfaces as an AppError when the service runs.
    - `init_*_service()` builds eagerly and raises RuntimeError right away
      if a required dependency is missing.
    """

    def __init__(
        self,
        settings: Settings,
        tokens: TokenManager,
        engine: Engine | None = None,
        session_factory: SessionFactory | None = None,
        store: SessionStore | None = None,
        google: GoogleOAuthClient | None = None,
        stripe_gateway: StripeGateway | None = None,
        guest_carts: GuestCartStore | None = None,
    ):
        self.settings = settings
        self.tokens = tokens
        self.engine = engine
        self.session_factory = session_factory
        self.store = store
        self.google = google
        self.stripe_gateway = stripe_gateway
        self.guest_carts = guest_carts

        self._auth = LazyService(self._build_auth_service)
        self._category = LazyService(self._build_category_service)
        self._product = LazyService(self._build_product_service)
        self._user = LazyService(self._build_user_service)
        self._order = LazyService(self._build_order_service)
        self._payment = LazyService(self._build_payment_service)
        self._cart = LazyService(self._build_cart_service)
        self._review = LazyService(self._build_review_service)

    @classmethod
    def from_settings(cls, settings: Settings) -> "HandlersConfig":
        """Wire real clients from configuration. Nothing connects yet."""
        engine = build_engine(settings.DATABASE_URL)

        store = None
        guest_carts = None
        if settings.REDIS_URL:
            redis_client = create_redis_client(settings.REDIS_URL)
            store = SessionStore(redis_client)
            guest_carts = GuestCartStore(redis_client)
        else:
            logger.warning("REDIS_URL not set: sign-in and guest carts are disabled")

        google = None
        if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
            google = GoogleOAuthClient(
                settings.GOOGLE_CLIENT_ID,
                settings.GOOGLE_CLIENT_SECRET,
                settings.GOOGLE_REDIRECT_URL,
            )

        return cls(
            settings=settings,
            tokens=TokenManager(
                settings.JWT_SECRET,
                settings.REFRESH_SECRET,
                settings.ISSUER,
                settings.AUDIENCE,
            ),
            engine=engine,
            session_factory=build_session_factory(engine),
            store=store,
            google=google,
            stripe_gateway=StripeGateway(
                settings.STRIPE_SECRET_KEY,
                settings.STRIPE_WEBHOOK_SECRET,
            ),
            guest_carts=guest_carts,
        )

    # ----- Builders -----

    def _build_auth_service(self) -> AuthService:
        return AuthService(UserRepository(), self.session_factory, self.tokens, self.store, self.google)

    def _build_category_service(self) -> CategoryService:
        return CategoryService(CategoryRepository(), self.session_factory)

    def _build_product_service(self) -> ProductService:
        return ProductService(ProductRepository(), self.session_factory)

    def _build_user_service(self) -> UserService:
        return UserService(UserRepository(), self.session_factory)

    def _build_order_service(self) -> OrderService:
        return OrderService(OrderRepository(), ProductRepository(), self.session_factory)

    def _build_payment_service(self) -> PaymentService:
        return PaymentService(
            PaymentRepository(),
            OrderRepository(),
            self.session_factory,
            self.stripe_gateway,
        )

    def _build_cart_service(self) -> CartService:
        # checkout places orders through the shared order service
        return CartService(
            CartRepository(),
            ProductRepository(),
            self.session_factory,
            self.guest_carts,
            order_service=self.get_order_service(),
        )

    def _build_review_service(self) -> ReviewService:
        return ReviewService(ReviewRepository(), ProductRepository(), self.session_factory)

    # ----- Lazy accessors -----

    def get_auth_service(self) -> AuthService:
        return self._auth.get()

    def get_category_service(self) -> CategoryService:
        return self._category.get()

    def get_product_service(self) -> ProductService:
        return self._product.get()

    def get_user_service(self) -> UserService:
        return self._user.get()

    def get_order_service(self) -> OrderService:
        return self._order.get()

    def get_payment_service(self) -> PaymentService:
        return self._payment.get()

    def get_cart_service(self) -> CartService:
        return self._cart.get()

    def get_review_service(self) -> ReviewService:
        return self._review.get()

    # ----- Eager initialisation -----

    def _require_database(self) -> None:
        if self.session_factory is None:
            raise RuntimeError("database connection not initialized")

    def init_auth_service(self) -> AuthService:
        self._require_database()
        if self.store is None:
            raise RuntimeError("session cache not initialized")
        return self._auth.init()

    def init_category_service(self) -> CategoryService:
        self._require_database()
        return self._category.init()

    def init_product_service(self) -> ProductService:
        self._require_database()
        return self._product.init()

    def init_user_service(self) -> UserService:
        self._require_database()
        return self._user.init()

    def init_order_service(self) -> OrderService:
        self._require_database()
        return self._order.init()

    def init_payment_service(self) -> PaymentService:
        self._require_database()
        if self.stripe_gateway is None or not self.stripe_gateway.api_key:
            raise RuntimeError("stripe secret key not configured")
        return self._payment.init()

    def init_cart_service(self) -> CartService:
        self._require_database()
        return self._cart.init()

    def init_review_service(self) -> ReviewService:
        self._require_database()
        return self._review.init()


def get_handlers(request: Request) -> HandlersConfig:
    """FastAPI dependency returning the app-wide HandlersConfig."""
    return request.app.state.handlers
