from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    book_id: str
    user_id: str
    user_name: str
    rating: int
    comment: Optional[str]
    likes: list[str]
    like_count: int
    created_at: datetime


def review_to_response(review) -> ReviewResponse:
    liked_by = [str(user.id) for user in review.liked_by]
    return ReviewResponse(
        id=str(review.id),
        book_id=str(review.book_id),
        user_id=str(review.user_id),
        user_name=review.user.name if review.user else "",
        rating=review.rating,
        comment=review.comment,
        likes=liked_by,
        like_count=len(liked_by),
        created_at=review.created_at,
    )
