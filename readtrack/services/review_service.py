"""
Review ledger: at most one review per (user, book), likes, and the book's aggregate rating.

The aggregate rating is always recomputed from the current review set (AVG/COUNT
over the reviews table), never maintained as a running average. Writes to the
book row go through SQLAlchemy's version_id_col, so a concurrent rating update
surfaces as StaleDataError and the whole operation is retried.
"""
import logging
from typing import Callable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from readtrack.core.config import settings
from readtrack.core.errors import Conflict, Forbidden, InvalidInput, NotFound, StoreUnavailable
from readtrack.models import Book, Review, User
from readtrack.utils.instrumentation import log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_RATING = 1
MAX_RATING = 5


def _coerce_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidInput("Rating must be an integer between 1 and 5")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidInput("Rating must be an integer between 1 and 5")
    return rating


def _get_book(db: Session, book_id: UUID) -> Book:
    book = db.query(Book).filter(Book.id == book_id).one_or_none()
    if book is None:
        raise NotFound("Book not found")
    return book


def _get_review(db: Session, review_id: UUID) -> Review:
    review = db.query(Review).filter(Review.id == review_id).one_or_none()
    if review is None:
        raise NotFound("Review not found")
    return review


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


def _has_reviewed(db: Session, book_id: UUID, user_id: UUID) -> bool:
    return db.query(Review.id).filter(
        Review.book_id == book_id,
        Review.user_id == user_id,
    ).first() is not None


def recompute_book_rating(db: Session, book: Book) -> None:
    """
    Set average_rating / rating_count from the reviews currently stored for the book.

    Flushes pending review inserts/deletes first so they are part of the aggregate.
    Does not commit.
    """
    db.flush()
    average, count = db.query(
        func.avg(Review.rating),
        func.count(Review.id),
    ).filter(Review.book_id == book.id).one()

    book.average_rating = float(average) if count else 0.0
    book.rating_count = int(count or 0)


def run_with_rating_retries(db: Session, label: str, operation: Callable[[], T]) -> T:
    """
    Run an operation that rewrites a book's rating, retrying when the book's
    revision moved underneath it.

    The operation must re-read everything it needs on every call.

    Raises:
        StoreUnavailable: still contended after RATING_UPDATE_MAX_RETRIES attempts
    """
    attempts = max(1, settings.RATING_UPDATE_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StaleDataError:
            db.rollback()
            logger.warning("%s: book revision changed concurrently (attempt %s/%s)", label, attempt, attempts)

    logger.error("%s: giving up after %s attempts", label, attempts)
    raise StoreUnavailable("Rating update kept conflicting with concurrent writers, please retry")


def add_review(
    db: Session,
    book_id: UUID,
    user_id: UUID,
    rating: int,
    comment: Optional[str] = None,
) -> Review:
    """
    Add the user's review to a book and recompute the book's aggregate rating.

    Raises:
        InvalidInput: rating is not an integer in [1, 5]
        NotFound: book or user does not exist
        Conflict: the user already reviewed this book
    """
    rating = _coerce_rating(rating)
    comment = comment.strip() if comment else None

    def _attempt() -> Review:
        book = _get_book(db, book_id)
        user = _get_user(db, user_id)

        if _has_reviewed(db, book.id, user.id):
            raise Conflict("You already reviewed this book")

        review = Review(book_id=book.id, user_id=user.id, rating=rating, comment=comment or None)
        db.add(review)
        try:
            db.flush()
        except IntegrityError:
            # Duplicate inserted between the check and the insert
            db.rollback()
            raise Conflict("You already reviewed this book")

        recompute_book_rating(db, book)
        log_event(
            db=db,
            event_name="review_added",
            user_id=user.id,
            properties={"book_id": book.id, "review_id": review.id, "rating": rating},
        )
        db.commit()
        db.refresh(review)

        logger.info(
            "Review added: review_id=%s, book_id=%s, user_id=%s, average_rating=%.3f, rating_count=%s",
            review.id,
            book.id,
            user.id,
            book.average_rating,
            book.rating_count,
        )
        return review

    return run_with_rating_retries(db, "add_review", _attempt)


def delete_review(db: Session, review_id: UUID, requesting_user: User) -> None:
    """
    Delete a review (author or admin only) and recompute the book's aggregate rating.

    Raises:
        NotFound: review does not exist
        Forbidden: requester is neither the author nor an admin
    """

    def _attempt() -> None:
        review = _get_review(db, review_id)
        if review.user_id != requesting_user.id and not requesting_user.is_admin:
            logger.warning(
                "Review delete refused: review_id=%s, requested_by=%s",
                review_id,
                requesting_user.id,
            )
            raise Forbidden("Not allowed to delete this review")

        book = review.book
        db.delete(review)
        recompute_book_rating(db, book)
        log_event(
            db=db,
            event_name="review_deleted",
            user_id=requesting_user.id,
            properties={"book_id": book.id, "review_id": review_id},
        )
        db.commit()

        logger.info(
            "Review deleted: review_id=%s, book_id=%s, by=%s, average_rating=%.3f, rating_count=%s",
            review_id,
            book.id,
            requesting_user.id,
            book.average_rating,
            book.rating_count,
        )

    run_with_rating_retries(db, "delete_review", _attempt)


def toggle_like(db: Session, review_id: UUID, user_id: UUID) -> Review:
    """
    Like the review if the user hasn't yet, otherwise unlike it.

    Raises:
        NotFound: review (or user) does not exist
    """
    review = _get_review(db, review_id)
    user = _get_user(db, user_id)

    liked = user not in review.liked_by
    if liked:
        review.liked_by.append(user)
    else:
        review.liked_by.remove(user)

    log_event(
        db=db,
        event_name="review_liked" if liked else "review_unliked",
        user_id=user.id,
        properties={"review_id": review.id},
    )
    try:
        db.commit()
    except IntegrityError:
        # Same user liked concurrently; the like is already recorded
        db.rollback()
        logger.info("Concurrent like ignored: review_id=%s, user_id=%s", review_id, user_id)
    except StaleDataError:
        # Same user unliked concurrently; the like is already gone
        db.rollback()
        logger.info("Concurrent unlike ignored: review_id=%s, user_id=%s", review_id, user_id)

    db.refresh(review)
    return review


def list_reviews_for_book(db: Session, book_id: UUID) -> List[Review]:
    """Reviews of a book in creation order, with authors and likes loaded."""
    _get_book(db, book_id)
    return (
        db.query(Review)
        .options(joinedload(Review.user), selectinload(Review.liked_by))
        .filter(Review.book_id == book_id)
        .order_by(Review.created_at.asc(), Review.id.asc())
        .all()
    )
