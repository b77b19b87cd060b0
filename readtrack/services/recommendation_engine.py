"""
Recommendation engine.

Ranks the catalog by aggregate rating and steers it with the user's favourite
genres. Output is fully deterministic for a given catalog and user state:

    rank key = (average_rating desc, rating_count desc, title asc, id asc)

1. Candidates are all books not already on one of the user's shelves.
2. Books sharing a genre with the user's favourites come first, in rank order.
3. Remaining slots are backfilled with the rest of the candidates, same order.
"""
import logging
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from readtrack.core.config import settings
from readtrack.core.errors import NotFound
from readtrack.models import Book, ShelfEntry, User

logger = logging.getLogger(__name__)


def normalize_genres(genres: Optional[Iterable[str]]) -> Set[str]:
    """Case-insensitive genre set; blank entries dropped."""
    return {str(g).strip().lower() for g in (genres or []) if g and str(g).strip()}


def ranking_key(book: Book) -> Tuple[float, int, str, str]:
    return (
        -(book.average_rating or 0.0),
        -(book.rating_count or 0),
        (book.title or "").lower(),
        str(book.id),
    )


def rank_books(books: Iterable[Book]) -> List[Book]:
    return sorted(books, key=ranking_key)


def _shelved_book_ids(db: Session, user_id: UUID) -> Set[UUID]:
    rows = db.query(ShelfEntry.book_id).filter(ShelfEntry.user_id == user_id).all()
    return {book_id for (book_id,) in rows}


def _genre_first(candidates: List[Book], genres: Set[str], limit: int) -> List[Book]:
    """Genre matches in rank order, backfilled from the remaining candidates."""
    chosen: List[Book] = []
    if genres:
        matching = [b for b in candidates if genres & normalize_genres(b.genres)]
        chosen = rank_books(matching)[:limit]

    if len(chosen) < limit:
        chosen_ids = {b.id for b in chosen}
        backfill = rank_books(b for b in candidates if b.id not in chosen_ids)
        chosen.extend(backfill[: limit - len(chosen)])

    return chosen


def recommend(db: Session, user_id: UUID, limit: Optional[int] = None) -> List[Book]:
    """
    Recommend up to `limit` books the user has not shelved yet.

    Raises:
        NotFound: the user does not exist
    """
    if limit is None:
        limit = settings.RECOMMENDATION_LIMIT

    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise NotFound("User not found")
    if limit <= 0:
        return []

    shelved = _shelved_book_ids(db, user.id)
    candidates = [b for b in db.query(Book).all() if b.id not in shelved]
    favourites = normalize_genres(user.favourite_genres)

    books = _genre_first(candidates, favourites, limit)

    logger.info(
        "Recommendations for user %s: %s books (favourites=%s, shelved=%s, candidates=%s)",
        user.id,
        len(books),
        sorted(favourites),
        len(shelved),
        len(candidates),
    )
    return books


def similar_books(db: Session, book_id: UUID, limit: Optional[int] = None) -> List[Book]:
    """
    Books sharing at least one genre with the given book, best rated first.

    Raises:
        NotFound: the book does not exist
    """
    if limit is None:
        limit = settings.SIMILAR_BOOKS_LIMIT

    book = db.query(Book).filter(Book.id == book_id).one_or_none()
    if book is None:
        raise NotFound("Book not found")

    genres = normalize_genres(book.genres)
    if not genres or limit <= 0:
        return []

    others = db.query(Book).filter(Book.id != book.id).all()
    matching = [b for b in others if genres & normalize_genres(b.genres)]
    return rank_books(matching)[:limit]
