# app/main.py
from contextlib import asynccontextmanager
import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.action_log import log_error
from app.core.config import get_settings
from app.core.errors import AppError, INTERNAL_ERROR_MESSAGE, http_status_for, public_message
from app.core.handlers_config import HandlersConfig
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import category as _category_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import payment as _payment_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import review as _review_models  # noqa: F401

# Routers
from app.routers.admin import router as admin_router
from app.routers.auth import router as auth_router
from app.routers.cart import guest_router as guest_cart_router
from app.routers.cart import router as cart_router
from app.routers.categories import router as categories_router
from app.routers.health import router as health_router
from app.routers.orders import router as orders_router
from app.routers.payments import router as payments_router
from app.routers.products import router as products_router
from app.routers.reviews import router as reviews_router
from app.routers.users import router as users_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    handlers: HandlersConfig = app.state.handlers
    if handlers.engine is not None:
        logger.info("Startup: connecting to the database...")
        try:
            create_db_and_tables(handlers.engine)
            logger.info("Startup: DB connection OK, tables verified.")
        except Exception as e:
            logger.error(f"Startup: DB connection FAILED: {e}")
            raise
    yield


def _action_name(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "name", None) or request.url.path


def register_exception_handlers(app: FastAPI) -> None:
    """
    Every failure leaves as {"error": "..."}.

      - AppError: status from the error code table
      - HTTPException: its own status and detail
      - validation errors: 400 "Invalid request payload"
      - anything else: 500 "Internal server error"
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log_error(request, _action_name(request), exc.code.value, exc.message, exc.err)
        return JSONResponse(
            status_code=http_status_for(exc.code),
            content={"error": public_message(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        log_error(request, _action_name(request), "http_error", str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        log_error(request, _action_name(request), "invalid_request", str(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request payload"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log_error(request, _action_name(request), "internal_error", "Unhandled exception", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": INTERNAL_ERROR_MESSAGE},
        )


def create_app(handlers: HandlersConfig | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    `handlers` defaults to real clients wired from settings; tests pass
    their own.
    """
    settings = get_settings() if handlers is None else handlers.settings
    if handlers is None:
        handlers = HandlersConfig.from_settings(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.handlers = handlers

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)

    # Versioned API prefix, e.g. /v1
    app.include_router(health_router, prefix=settings.API_V1_STR)
    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(categories_router, prefix=settings.API_V1_STR)
    app.include_router(products_router, prefix=settings.API_V1_STR)
    app.include_router(users_router, prefix=settings.API_V1_STR)
    app.include_router(admin_router, prefix=settings.API_V1_STR)
    app.include_router(orders_router, prefix=settings.API_V1_STR)
    app.include_router(payments_router, prefix=settings.API_V1_STR)
    app.include_router(cart_router, prefix=settings.API_V1_STR)
    app.include_router(guest_cart_router, prefix=settings.API_V1_STR)
    app.include_router(reviews_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "ecom-backend"}

    return app


app = create_app()
