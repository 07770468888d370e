# app/routers/reviews.py
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.action_log import log_success
from app.core.auth import require_auth
from app.core.handlers_config import HandlersConfig, get_handlers
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.review import (
    ReviewCreate,
    ReviewCreated,
    ReviewFilter,
    ReviewPage,
    ReviewRead,
    ReviewUpdate,
)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def review_filter(
    rating: int | None = None,
    min_rating: int | None = None,
    max_rating: int | None = None,
    date_from: datetime | None = Query(default=None, alias="from"),
    date_to: datetime | None = Query(default=None, alias="to"),
    has_media: bool | None = None,
    sort: str | None = None,
) -> ReviewFilter:
    """
    Listing criteria from the query string.

    sort: date_desc (default), date_asc, rating_desc, rating_asc,
    updated_desc, updated_asc, comment_length_desc, comment_length_asc
    """
    return ReviewFilter(
        rating=rating,
        min_rating=min_rating,
        max_rating=max_rating,
        date_from=date_from,
        date_to=date_to,
        has_media=has_media,
        sort=sort,
    )


# -------- Public reads --------


@router.get("/product/{product_id}", response_model=ReviewPage)
def get_product_reviews(
    product_id: uuid.UUID,
    page: int | None = None,
    page_size: int | None = Query(default=None, alias="pageSize"),
    criteria: ReviewFilter = Depends(review_filter),
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_review_service().list_product_reviews(product_id, criteria, page, page_size)


@router.get("/user", response_model=ReviewPage)
def get_my_reviews(
    page: int | None = None,
    page_size: int | None = Query(default=None, alias="pageSize"),
    criteria: ReviewFilter = Depends(review_filter),
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Reviews written by the signed-in user."""
    return handlers.get_review_service().list_user_reviews(current_user, criteria, page, page_size)


@router.get("/{review_id}", response_model=ReviewRead)
def get_review(
    review_id: uuid.UUID,
    handlers: HandlersConfig = Depends(get_handlers),
):
    return handlers.get_review_service().get_review(review_id)


# -------- Author writes --------


@router.post(
    "/",
    response_model=ReviewCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_review(
    payload: ReviewCreate,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    review_id = handlers.get_review_service().create_review(current_user, payload)
    log_success(request, "create_review", "Review created successfully", current_user.id)
    return {"message": "Review created successfully", "review_id": review_id}


@router.put("/{review_id}", response_model=MessageResponse)
def update_review(
    review_id: uuid.UUID,
    payload: ReviewUpdate,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    """Replace rating, comment and media of your own review."""
    handlers.get_review_service().update_review(current_user, review_id, payload)
    log_success(request, "update_review_by_id", "Review updated successfully", current_user.id)
    return {"message": "Review updated successfully"}


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review(
    review_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(require_auth),
    handlers: HandlersConfig = Depends(get_handlers),
):
    handlers.get_review_service().delete_review(current_user, review_id)
    log_success(request, "delete_review_by_id", "Review deleted successfully", current_user.id)
    return {"message": "Review deleted successfully"}
