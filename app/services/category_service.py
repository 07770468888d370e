# app/services/category_service.py
import uuid

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import AppError, ErrorCode
from app.database import SessionFactory, commit, read_session, transaction
from app.models.category import Category
from app.models.user import utcnow
from app.repositories.category_repo import CategoryRepository
from app.schemas.category import CategoryCreate, CategoryUpdate

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class CategoryService:
    """
    Business logic for categories.

    Rules:
      - name is required, at most 100 characters
      - description is optional, at most 500 characters
      - every write runs in its own transaction
    """

    def __init__(
        self,
        repo: CategoryRepository | None,
        session_factory: SessionFactory | None,
    ):
        self.repo = repo
        self.session_factory = session_factory

    def _validate(self, payload: CategoryCreate) -> None:
        if not payload.name:
            raise AppError(ErrorCode.INVALID_REQUEST, "Category name is required")
        if len(payload.name) > NAME_MAX_LENGTH:
            raise AppError(
                ErrorCode.INVALID_REQUEST,
                f"Category name too long (max {NAME_MAX_LENGTH} characters)",
            )
        if payload.description and len(payload.description) > DESCRIPTION_MAX_LENGTH:
            raise AppError(
                ErrorCode.INVALID_REQUEST,
                f"Category description too long (max {DESCRIPTION_MAX_LENGTH} characters)",
            )

    # ----- Writes -----

    def create_category(self, payload: CategoryCreate) -> str:
        """
        Insert a category and return its new id.

        Raises:
            AppError(transaction_error): no database configured.
            AppError(invalid_request): name/description out of bounds.
            AppError(create_category_error): insert failed.
            AppError(commit_error): commit failed.
        """
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        self._validate(payload)

        category = Category(
            id=uuid.uuid4(),
            name=payload.name,
            description=payload.description,
        )
        with transaction(self.session_factory) as session:
            try:
                self.repo.create(session, category)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CREATE_CATEGORY_ERROR, "Error creating category", e) from e
            commit(session)

        return str(category.id)

    def update_category(self, payload: CategoryUpdate) -> None:
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        if payload.id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Category ID is required")
        self._validate(payload)

        with transaction(self.session_factory) as session:
            try:
                category = self.repo.get_by_id(session, payload.id)
                if category is None:
                    raise AppError(ErrorCode.CATEGORY_NOT_FOUND, "Category not found")
                category.name = payload.name
                category.description = payload.description
                category.updated_at = utcnow()
                self.repo.update(session, category)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_CATEGORY_ERROR, "Error updating category", e) from e
            commit(session)

    def delete_category(self, category_id: uuid.UUID | None) -> None:
        if self.session_factory is None or self.repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")
        if category_id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Category ID is required")

        with transaction(self.session_factory) as session:
            try:
                self.repo.delete(session, category_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DELETE_CATEGORY_ERROR, "Error deleting category", e) from e
            commit(session)

    # ----- Reads -----

    def get_all_categories(self) -> list[Category]:
        if self.repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")

        with read_session(self.session_factory) as session:
            try:
                return self.repo.list(session)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to fetch categories", e) from e
