"""Product reviews router (one review per user per product)."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.schemas import (
    ReviewCreate,
    ReviewResponse,
    UserReviewResponse,
)
from services.commerce_service.services import catalog
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["reviews"])


@router.get("/reviews/me", response_model=list[UserReviewResponse])
async def list_my_reviews(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's reviews with the reviewed product."""
    rows = await catalog.list_user_reviews(db, current_user.user_id)
    return [
        UserReviewResponse(
            **ReviewResponse.model_validate(review).model_dump(),
            product_name=product.name,
            product_slug=product.slug,
        )
        for review, product in rows
    ]


@router.post(
    "/reviews/{product_id}",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_review(
    product_id: uuid.UUID,
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.add_review(
        db,
        product_id,
        current_user.user_id,
        review_in,
        user_name=current_user.name,
    )


@router.put("/reviews/{product_id}", response_model=ReviewResponse)
async def update_review(
    product_id: uuid.UUID,
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.update_review(db, product_id, current_user.user_id, review_in)


@router.delete("/reviews/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await catalog.delete_review(db, product_id, current_user.user_id)
