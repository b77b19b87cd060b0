"""
User accounts: registration, login, profile edits and admin management.
"""
import logging
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from readtrack.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from readtrack.core.security import get_password_hash, verify_password
from readtrack.models import Book, Review, User, UserRole
from readtrack.services.catalog_service import clean_genres
from readtrack.services.review_service import recompute_book_rating, run_with_rating_retries

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == _normalize_email(email)).one_or_none()


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.USER,
) -> User:
    """
    Create an account. The HTTP layer always registers plain users; the admin
    role is only handed out by the seed script.

    Raises:
        InvalidInput: empty name or email
        Conflict: email already registered (case-insensitive)
    """
    name = (name or "").strip()
    email = _normalize_email(email)
    if not name or not email:
        raise InvalidInput("Name and email are required")

    if get_user_by_email(db, email) is not None:
        raise Conflict("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        favourite_genres=[],
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered")
    db.refresh(user)

    logger.info("User registered: user_id=%s, role=%s", user.id, user.role.value)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials, None otherwise."""
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed for email=%s", _normalize_email(email))
        return None
    return user


def update_profile(
    db: Session,
    user: User,
    name: Optional[str] = None,
    bio: Optional[str] = None,
    avatar_url: Optional[str] = None,
    favourite_genres: Optional[Iterable[str]] = None,
) -> User:
    """Update only the fields that were given."""
    if name is not None:
        name = name.strip()
        if not name:
            raise InvalidInput("Name cannot be empty")
        user.name = name
    if bio is not None:
        user.bio = bio
    if avatar_url is not None:
        user.avatar_url = avatar_url
    if favourite_genres is not None:
        user.favourite_genres = clean_genres(favourite_genres)

    db.commit()
    db.refresh(user)
    logger.info("Profile updated: user_id=%s", user.id)
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.asc(), User.email.asc()).all()


def delete_user(db: Session, user_id: UUID, requesting_admin: User) -> None:
    """
    Delete a user with their shelf entries, reviews and likes, then recompute
    the rating of every book that lost a review.

    Raises:
        Forbidden: an admin tried to delete their own account
        NotFound: user does not exist
    """
    if user_id == requesting_admin.id:
        raise Forbidden("Admins cannot delete their own account")

    def _attempt() -> None:
        user = db.query(User).filter(User.id == user_id).one_or_none()
        if user is None:
            raise NotFound("User not found")

        affected_book_ids = {book_id for (book_id,) in db.query(Review.book_id).filter(Review.user_id == user.id)}
        db.delete(user)
        db.flush()

        for book in db.query(Book).filter(Book.id.in_(affected_book_ids)).all():
            recompute_book_rating(db, book)
        db.commit()

        logger.info(
            "User deleted: user_id=%s, by=%s, books_rerated=%s",
            user_id,
            requesting_admin.id,
            len(affected_book_ids),
        )

    run_with_rating_retries(db, "delete_user", _attempt)
