"""
Review API Endpoints

POST /api/reviews - Review the other participant of a COMPLETED swap
POST /api/reviews/rate/:user_id - Rate (or re-rate) a user you completed a swap with
GET /api/reviews/swap/:swap_session_id - Reviews left in one swap
GET /api/reviews/user/:user_id - Reviews a user has received
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap.api.auth import get_current_user
from skillswap.database import get_db
from skillswap.models.user import User
from skillswap.services.guards import to_dict
from skillswap.services.rating_aggregator import get_rating_aggregator

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


class ReviewCreate(BaseModel):
    swap_session_id: int
    reviewee_id: int
    rating: int
    comment: Optional[str] = None


class DirectRating(BaseModel):
    rating: int
    comment: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """
    Raises:
        400: Rating outside 1..5, self review, or reviewee not in the swap
        403: Current user is not a participant
        409: Swap not COMPLETED, or already reviewed
    """
    review = await get_rating_aggregator().create_review(
        db,
        reviewer_id=current_user.id,
        swap_session_id=body.swap_session_id,
        reviewee_id=body.reviewee_id,
        rating=body.rating,
        comment=body.comment,
    )
    return {"message": "Review submitted successfully", "review": to_dict(review)}


@router.post("/rate/{user_id}")
async def rate_user(
    body: DirectRating,
    response: Response,
    user_id: int = Path(..., description="User being rated"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    """201 for a first rating, 200 when an existing rating was updated"""
    review, created = await get_rating_aggregator().rate_direct(
        db, current_user.id, user_id, body.rating, body.comment
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
        message = "Rating submitted successfully"
    else:
        message = "Rating updated successfully"
    return {"message": message, "review": to_dict(review)}


@router.get("/swap/{swap_session_id}")
async def list_swap_reviews(
    swap_session_id: int = Path(..., description="Swap session id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    reviews = await get_rating_aggregator().list_session_reviews(db, swap_session_id, current_user.id)
    return {"reviews": reviews}


@router.get("/user/{user_id}")
async def list_user_reviews(
    user_id: int = Path(..., description="Reviewee id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> Dict[str, Any]:
    return {"reviews": await get_rating_aggregator().list_user_reviews(db, user_id)}
