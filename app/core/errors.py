# app/core/errors.py
from enum import Enum

from fastapi import status

GENERIC_SERVER_MESSAGE = "Something went wrong, please try again later"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorCode(str, Enum):
    """Closed set of machine-readable failure codes raised by services."""

    # ----- Shared / infrastructure -----
    INVALID_REQUEST = "invalid_request"
    DATABASE_ERROR = "database_error"
    TRANSACTION_ERROR = "transaction_error"
    COMMIT_ERROR = "commit_error"
    CACHE_ERROR = "redis_error"
    UPDATE_FAILED = "update_failed"
    PROVIDER_NOT_CONFIGURED = "provider_not_configured"

    # ----- Category -----
    CREATE_CATEGORY_ERROR = "create_category_error"
    UPDATE_CATEGORY_ERROR = "update_category_error"
    DELETE_CATEGORY_ERROR = "delete_category_error"
    CATEGORY_NOT_FOUND = "category_not_found"

    # ----- Product -----
    CREATE_PRODUCT_ERROR = "create_product_error"
    DELETE_PRODUCT_ERROR = "delete_product_error"
    PRODUCT_NOT_FOUND = "product_not_found"

    # ----- User -----
    USER_NOT_FOUND = "user_not_found"
    ALREADY_ADMIN = "already_admin"
    UNAUTHORIZED_USER = "unauthorized_user"
    UPDATE_ERROR = "update_error"

    # ----- Auth -----
    NAME_EXISTS = "name_exists"
    EMAIL_EXISTS = "email_exists"
    USER_EXISTS = "user_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    HASH_ERROR = "hash_error"
    CREATE_USER_ERROR = "create_user_error"
    UPDATE_USER_ERROR = "update_user_error"
    TOKEN_GENERATION_ERROR = "token_generation_error"
    INVALID_TOKEN = "invalid_token"
    INVALID_STATE = "invalid_state"
    TOKEN_EXCHANGE_ERROR = "token_exchange_error"
    GOOGLE_API_ERROR = "google_api_error"
    GOOGLE_TOKEN_ERROR = "google_token_error"

    # ----- Order -----
    CREATE_ORDER_ERROR = "create_order_error"
    CREATE_ORDER_ITEM_ERROR = "create_order_item_error"
    DELETE_ORDER_ERROR = "delete_order_error"
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_STATUS = "invalid_status"
    UNAUTHORIZED = "unauthorized"

    # ----- Payment -----
    INVALID_CURRENCY = "invalid_currency"
    INVALID_ORDER_STATUS = "invalid_order_status"
    INVALID_AMOUNT = "invalid_amount"
    PAYMENT_EXISTS = "payment_exists"
    PAYMENT_NOT_FOUND = "payment_not_found"
    INVALID_PAYMENT = "invalid_payment"
    STRIPE_ERROR = "stripe_error"
    WEBHOOK_ERROR = "webhook_error"

    # ----- Cart -----
    CART_EMPTY = "cart_empty"
    CART_FULL = "cart_full"
    ITEM_NOT_FOUND = "item_not_found"
    ADD_FAILED = "add_failed"
    REMOVE_FAILED = "remove_failed"
    CLEAR_FAILED = "clear_failed"

    # ----- Review -----
    REVIEW_NOT_FOUND = "review_not_found"
    CREATE_REVIEW_ERROR = "create_review_error"
    UPDATE_REVIEW_ERROR = "update_review_error"
    DELETE_REVIEW_ERROR = "delete_review_error"


class AppError(Exception):
    """
    Service-level failure carrying a code, a human message and the cause.

    Services raise it; the exception handler in `app.main` translates the
    code to an HTTP status through `ERROR_STATUS`.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        err: BaseException | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.err = err

    def __str__(self) -> str:
        if self.err is not None:
            return f"{self.code.value}: {self.message}: {self.err}"
        return f"{self.code.value}: {self.message}"


_400 = status.HTTP_400_BAD_REQUEST
_500 = status.HTTP_500_INTERNAL_SERVER_ERROR

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: _400,
    ErrorCode.DATABASE_ERROR: _500,
    ErrorCode.TRANSACTION_ERROR: _500,
    ErrorCode.COMMIT_ERROR: _500,
    ErrorCode.CACHE_ERROR: _500,
    ErrorCode.UPDATE_FAILED: _500,
    ErrorCode.PROVIDER_NOT_CONFIGURED: _500,
    ErrorCode.CREATE_CATEGORY_ERROR: _500,
    ErrorCode.UPDATE_CATEGORY_ERROR: _500,
    ErrorCode.DELETE_CATEGORY_ERROR: _500,
    ErrorCode.CATEGORY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CREATE_PRODUCT_ERROR: _500,
    ErrorCode.DELETE_PRODUCT_ERROR: _500,
    ErrorCode.PRODUCT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ALREADY_ADMIN: _400,
    ErrorCode.UNAUTHORIZED_USER: status.HTTP_403_FORBIDDEN,
    ErrorCode.UPDATE_ERROR: _500,
    ErrorCode.NAME_EXISTS: _400,
    ErrorCode.EMAIL_EXISTS: _400,
    ErrorCode.USER_EXISTS: _400,
    ErrorCode.INVALID_CREDENTIALS: _400,
    ErrorCode.HASH_ERROR: _500,
    ErrorCode.CREATE_USER_ERROR: _500,
    ErrorCode.UPDATE_USER_ERROR: _500,
    ErrorCode.TOKEN_GENERATION_ERROR: _500,
    ErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_STATE: _400,
    ErrorCode.TOKEN_EXCHANGE_ERROR: _400,
    ErrorCode.GOOGLE_API_ERROR: _400,
    ErrorCode.GOOGLE_TOKEN_ERROR: _400,
    ErrorCode.CREATE_ORDER_ERROR: _500,
    ErrorCode.CREATE_ORDER_ITEM_ERROR: _500,
    ErrorCode.DELETE_ORDER_ERROR: _500,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_STATUS: _400,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_CURRENCY: _400,
    ErrorCode.INVALID_ORDER_STATUS: _400,
    ErrorCode.INVALID_AMOUNT: _400,
    ErrorCode.PAYMENT_EXISTS: _400,
    ErrorCode.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_PAYMENT: _400,
    ErrorCode.STRIPE_ERROR: _500,
    ErrorCode.WEBHOOK_ERROR: _400,
    ErrorCode.CART_EMPTY: _400,
    ErrorCode.CART_FULL: _400,
    ErrorCode.ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ADD_FAILED: _500,
    ErrorCode.REMOVE_FAILED: _500,
    ErrorCode.CLEAR_FAILED: _500,
    ErrorCode.REVIEW_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CREATE_REVIEW_ERROR: _500,
    ErrorCode.UPDATE_REVIEW_ERROR: _500,
    ErrorCode.DELETE_REVIEW_ERROR: _500,
}

_unmapped = set(ErrorCode) - set(ERROR_STATUS)
if _unmapped:
    raise RuntimeError(f"error codes without an HTTP status: {sorted(c.value for c in _unmapped)}")


def http_status_for(code: ErrorCode) -> int:
    return ERROR_STATUS[code]


def public_message(error: AppError) -> str:
    """
    Message safe to return to the client.

    4xx codes expose the service message verbatim, 5xx codes never do.
    """
    if http_status_for(error.code) >= _500:
        return GENERIC_SERVER_MESSAGE
    return error.message
