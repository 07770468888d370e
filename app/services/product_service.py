# app/services/product_service.py
import uuid
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AppError, ErrorCode
from app.database import SessionFactory, commit, read_session, transaction
from app.models.product import Product
from app.models.user import utcnow
from app.repositories.product_repo import ProductRepository
from app.schemas.product import ProductCreate, ProductFilter, ProductUpdate

NAME_MAX_LENGTH = 100
CENTS = Decimal("0.01")


def format_price(price: Decimal) -> Decimal:
    """Round to two decimal places, the precision of the price column."""
    try:
        return Decimal(price).quantize(CENTS)
    except InvalidOperation as e:
        raise AppError(ErrorCode.INVALID_REQUEST, "Invalid price", e) from e


class ProductService:
    """
    Business logic for products.

    Responsibilities:
      - validate create/update payloads
      - run each write in its own transaction
      - choose the listing variant by role: admins see every product,
        everyone else only active ones
    """

    def __init__(
        self,
        repo: ProductRepository | None,
        session_factory: SessionFactory | None,
    ):
        self.repo = repo
        self.session_factory = session_factory

    def _validate(self, payload: ProductCreate) -> None:
        if (
            payload.category_id is None
            or not payload.name
            or payload.price is None
            or payload.price <= 0
            or payload.stock < 0
        ):
            raise AppError(ErrorCode.INVALID_REQUEST, "Missing or invalid required fields")
        if len(payload.name) > NAME_MAX_LENGTH:
            raise AppError(
                ErrorCode.INVALID_REQUEST,
                f"Product name too long (max {NAME_MAX_LENGTH} characters)",
            )

    def _require_writer(self) -> None:
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    # ----- Writes -----

    def create_product(self, payload: ProductCreate) -> str:
        """
        Insert a product and return its new id.

        is_active defaults to True when the payload leaves it out.
        """
        self._require_writer()
        self._validate(payload)

        product = Product(
            id=uuid.uuid4(),
            category_id=payload.category_id,
            name=payload.name,
            description=payload.description,
            price=format_price(payload.price),
            stock=payload.stock,
            image_url=payload.image_url,
            is_active=True if payload.is_active is None else payload.is_active,
        )
        with transaction(self.session_factory) as session:
            try:
                self.repo.create(session, product)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CREATE_PRODUCT_ERROR, "Error creating product", e) from e
            commit(session)

        return str(product.id)

    def update_product(self, payload: ProductUpdate) -> None:
        self._require_writer()
        if payload.id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Product ID is required")
        self._validate(payload)

        with transaction(self.session_factory) as session:
            try:
                product = self.repo.get_by_id(session, payload.id)
                if product is None:
                    raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found")
                product.category_id = payload.category_id
                product.name = payload.name
                product.description = payload.description
                product.price = format_price(payload.price)
                product.stock = payload.stock
                product.image_url = payload.image_url
                if payload.is_active is not None:
                    product.is_active = payload.is_active
                product.updated_at = utcnow()
                self.repo.update(session, product)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_FAILED, "Error updating product", e) from e
            commit(session)

    def delete_product(self, product_id: uuid.UUID | None) -> None:
        """
        Delete a product after confirming it exists.

        Raises:
            AppError(product_not_found): lookup failed or returned nothing.
            AppError(delete_product_error): delete failed.
        """
        self._require_writer()
        if product_id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Product ID is required")

        with transaction(self.session_factory) as session:
            try:
                product = self.repo.get_by_id(session, product_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found", e) from e
            if product is None:
                raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found")

            try:
                self.repo.delete(session, product)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DELETE_PRODUCT_ERROR, "Error deleting product", e) from e
            commit(session)

    # ----- Reads -----

    def _require_reader(self) -> None:
        if self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB is nil")

    def get_all_products(self, is_admin: bool) -> list[Product]:
        self._require_reader()
        with read_session(self.session_factory, ErrorCode.TRANSACTION_ERROR) as session:
            try:
                if is_admin:
                    return self.repo.list_all(session)
                return self.repo.list_active(session)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch products", e) from e

    def get_product_by_id(self, product_id: uuid.UUID | None, is_admin: bool) -> Product:
        if product_id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Missing product ID")
        self._require_reader()

        with read_session(self.session_factory, ErrorCode.TRANSACTION_ERROR) as session:
            try:
                if is_admin:
                    product = self.repo.get_by_id(session, product_id)
                else:
                    product = self.repo.get_active_by_id(session, product_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found", e) from e

        if product is None:
            raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found")
        return product

    def filter_products(self, criteria: ProductFilter, is_admin: bool) -> list[Product]:
        """
        Narrow the catalog by category, active flag and price range.

        Non-admins are always restricted to active products.
        """
        self._require_reader()
        if (
            criteria.min_price is not None
            and criteria.max_price is not None
            and criteria.min_price > criteria.max_price
        ):
            raise AppError(ErrorCode.INVALID_REQUEST, "min_price cannot exceed max_price")

        is_active = criteria.is_active if is_admin else True
        with read_session(self.session_factory, ErrorCode.TRANSACTION_ERROR) as session:
            try:
                return self.repo.filter(
                    session,
                    category_id=criteria.category_id,
                    is_active=is_active,
                    min_price=criteria.min_price,
                    max_price=criteria.max_price,
                )
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to filter products", e) from e
