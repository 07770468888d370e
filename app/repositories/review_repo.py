# app/repositories/review_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.review import Review
from app.schemas.review import ReviewFilter

DEFAULT_SORT = "date_desc"

SORT_ORDER = {
    "date_desc": Review.created_at.desc(),
    "date_asc": Review.created_at.asc(),
    "rating_desc": Review.rating.desc(),
    "rating_asc": Review.rating.asc(),
    "updated_desc": Review.updated_at.desc(),
    "updated_asc": Review.updated_at.asc(),
    "comment_length_desc": func.length(Review.comment).desc(),
    "comment_length_asc": func.length(Review.comment).asc(),
}


def _conditions(criteria: ReviewFilter) -> list:
    conds = []
    if criteria.rating is not None:
        conds.append(Review.rating == criteria.rating)
    if criteria.min_rating is not None:
        conds.append(Review.rating >= criteria.min_rating)
    if criteria.max_rating is not None:
        conds.append(Review.rating <= criteria.max_rating)
    if criteria.date_from is not None:
        conds.append(Review.created_at >= criteria.date_from)
    if criteria.date_to is not None:
        conds.append(Review.created_at <= criteria.date_to)
    if criteria.has_media is not None:
        conds.append(Review.has_media == criteria.has_media)
    return conds


class ReviewRepository:
    """
    Data access layer for Review.

    - Keeps has_media in step with media_urls on every write.
    - Flushes, never commits.
    """

    def get_by_id(self, session: Session, review_id: uuid.UUID) -> Review | None:
        return session.get(Review, review_id)

    def page(
        self,
        session: Session,
        criteria: ReviewFilter,
        offset: int,
        limit: int,
        product_id: uuid.UUID | None = None,
        user_id: uuid.UUID | None = None,
    ) -> tuple[list[Review], int]:
        """One page of matching reviews plus the total match count."""
        conds = _conditions(criteria)
        if product_id is not None:
            conds.append(Review.product_id == product_id)
        if user_id is not None:
            conds.append(Review.user_id == user_id)

        count_stmt = select(func.count()).select_from(Review)
        stmt = select(Review)
        if conds:
            count_stmt = count_stmt.where(*conds)
            stmt = stmt.where(*conds)
        total = session.exec(count_stmt).one()

        order = SORT_ORDER.get(criteria.sort or DEFAULT_SORT, SORT_ORDER[DEFAULT_SORT])
        stmt = stmt.order_by(order, Review.id).offset(offset).limit(limit)
        return list(session.exec(stmt).all()), total

    def create(self, session: Session, review: Review) -> Review:
        review.has_media = bool(review.media_urls)
        session.add(review)
        session.flush()
        return review

    def update(self, session: Session, review: Review) -> Review:
        review.has_media = bool(review.media_urls)
        session.add(review)
        session.flush()
        return review

    def delete(self, session: Session, review: Review) -> None:
        session.delete(review)
        session.flush()
