from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from readtrack.database import get_db
from readtrack.core.auth import get_current_user
from readtrack.models import User
from readtrack.schemas.review import ReviewCreate, ReviewResponse, review_to_response
from readtrack.services import review_service

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/book/{book_id}", response_model=List[ReviewResponse])
def get_reviews_for_book(book_id: UUID, db: Session = Depends(get_db)):
    reviews = review_service.list_reviews_for_book(db, book_id)
    return [review_to_response(review) for review in reviews]


@router.post("/book/{book_id}", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def add_review(
    book_id: UUID,
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Review a book once; the book's average rating is recomputed."""
    review = review_service.add_review(db, book_id, user.id, payload.rating, payload.comment)
    return review_to_response(review)


@router.delete("/{review_id}")
def delete_review(
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Authors can delete their own reviews, admins any review."""
    review_service.delete_review(db, review_id, user)
    return {"message": "Review deleted"}


@router.post("/{review_id}/like", response_model=ReviewResponse)
def toggle_like(
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = review_service.toggle_like(db, review_id, user.id)
    return review_to_response(review)
