# app/services/review_service.py
import math
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import AppError, ErrorCode
from app.database import SessionFactory, commit, read_session, transaction
from app.models.review import Review
from app.models.user import User, utcnow
from app.repositories.product_repo import ProductRepository
from app.repositories.review_repo import ReviewRepository
from app.schemas.review import ReviewCreate, ReviewFilter, ReviewPage, ReviewRead, ReviewUpdate

RATING_MIN = 1
RATING_MAX = 5
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _validate(payload: ReviewUpdate) -> None:
    if not RATING_MIN <= payload.rating <= RATING_MAX:
        raise AppError(ErrorCode.INVALID_REQUEST, "Rating must be between 1 and 5")
    if not payload.comment:
        raise AppError(ErrorCode.INVALID_REQUEST, "Comment is required")


def _rating_or_none(value: int | None) -> int | None:
    if value is None or not RATING_MIN <= value <= RATING_MAX:
        return None
    return value


def _clean_filter(criteria: ReviewFilter | None) -> ReviewFilter:
    criteria = criteria or ReviewFilter()
    return criteria.model_copy(
        update={
            "rating": _rating_or_none(criteria.rating),
            "min_rating": _rating_or_none(criteria.min_rating),
            "max_rating": _rating_or_none(criteria.max_rating),
        }
    )


class ReviewService:
    """
    Product reviews.

    Anyone can read reviews; writing needs a signed-in user and only the
    author may change or remove a review.
    """

    def __init__(
        self,
        repo: ReviewRepository | None,
        product_repo: ProductRepository | None,
        session_factory: SessionFactory | None,
    ):
        self.repo = repo
        self.product_repo = product_repo
        self.session_factory = session_factory

    def _require_writer(self) -> None:
        if self.session_factory is None or self.repo is None or self.product_repo is None:
            raise AppError(ErrorCode.TRANSACTION_ERROR, "DB connection is nil")

    def _require_reader(self) -> None:
        if self.repo is None:
            raise AppError(ErrorCode.DATABASE_ERROR, "Database not initialized")

    # ----- Writes -----

    def create_review(self, user: User, payload: ReviewCreate) -> str:
        """
        Store a review of an active product and return its id.

        Raises:
            AppError(invalid_request): product id missing, rating or comment invalid.
            AppError(product_not_found): unknown or inactive product.
            AppError(create_review_error): insert failed.
        """
        self._require_writer()
        if payload.product_id is None:
            raise AppError(ErrorCode.INVALID_REQUEST, "Product ID is required")
        _validate(payload)

        with transaction(self.session_factory) as session:
            try:
                if self.product_repo.get_active_by_id(session, payload.product_id) is None:
                    raise AppError(ErrorCode.PRODUCT_NOT_FOUND, "Product not found")
                review = Review(
                    user_id=user.id,
                    product_id=payload.product_id,
                    rating=payload.rating,
                    comment=payload.comment,
                    media_urls=payload.media_urls,
                )
                self.repo.create(session, review)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.CREATE_REVIEW_ERROR, "Failed to create review", e) from e
            commit(session)

        return str(review.id)

    def update_review(self, user: User, review_id: uuid.UUID, payload: ReviewUpdate) -> None:
        self._require_writer()
        _validate(payload)

        with transaction(self.session_factory) as session:
            try:
                review = self._owned(session, user, review_id, "update")
                review.rating = payload.rating
                review.comment = payload.comment
                review.media_urls = list(payload.media_urls)
                review.updated_at = utcnow()
                self.repo.update(session, review)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.UPDATE_REVIEW_ERROR, "Failed to update review", e) from e
            commit(session)

    def delete_review(self, user: User, review_id: uuid.UUID) -> None:
        self._require_writer()
        with transaction(self.session_factory) as session:
            try:
                self.repo.delete(session, self._owned(session, user, review_id, "delete"))
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DELETE_REVIEW_ERROR, "Failed to delete review", e) from e
            commit(session)

    def _owned(self, session: Session, user: User, review_id: uuid.UUID, verb: str) -> Review:
        review = self.repo.get_by_id(session, review_id)
        if review is None:
            raise AppError(ErrorCode.REVIEW_NOT_FOUND, "Review not found")
        if review.user_id != user.id:
            raise AppError(ErrorCode.UNAUTHORIZED, f"You can only {verb} your own reviews")
        return review

    # ----- Reads -----

    def get_review(self, review_id: uuid.UUID) -> Review:
        self._require_reader()
        with read_session(self.session_factory) as session:
            try:
                review = self.repo.get_by_id(session, review_id)
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to get review", e) from e
        if review is None:
            raise AppError(ErrorCode.REVIEW_NOT_FOUND, "Review not found")
        return review

    def list_product_reviews(
        self,
        product_id: uuid.UUID,
        criteria: ReviewFilter | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> ReviewPage:
        return self._page(criteria, page, page_size, product_id=product_id)

    def list_user_reviews(
        self,
        user: User,
        criteria: ReviewFilter | None = None,
        page: int | None = None,
        page_size: int | None = None,
    ) -> ReviewPage:
        return self._page(criteria, page, page_size, user_id=user.id)

    def _page(
        self,
        criteria: ReviewFilter | None,
        page: int | None,
        page_size: int | None,
        **owner: uuid.UUID,
    ) -> ReviewPage:
        """
        Paginate with forgiving inputs.

        - page below 1 or missing: 1
        - page_size below 1 or missing: 10, capped at 100
        """
        self._require_reader()
        page = page if page and page > 0 else 1
        page_size = min(page_size, MAX_PAGE_SIZE) if page_size and page_size > 0 else DEFAULT_PAGE_SIZE

        with read_session(self.session_factory) as session:
            try:
                rows, total = self.repo.page(
                    session,
                    _clean_filter(criteria),
                    offset=(page - 1) * page_size,
                    limit=page_size,
                    **owner,
                )
            except SQLAlchemyError as e:
                raise AppError(ErrorCode.DATABASE_ERROR, "Failed to get reviews", e) from e

        total_pages = math.ceil(total / page_size)
        return ReviewPage(
            data=[ReviewRead.model_validate(row, from_attributes=True) for row in rows],
            total_count=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )
