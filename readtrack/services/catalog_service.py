"""
Book catalog: browsing for everyone, create/update/delete for admins.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from readtrack.core.errors import Conflict, InvalidInput, NotFound
from readtrack.models import Book, User
from readtrack.services.recommendation_engine import normalize_genres, rank_books
from readtrack.services.shelf_service import reclamp_progress

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("title", "rating", "recent")

# Fields an admin may change through update_book
EDITABLE_FIELDS = ("title", "author", "genres", "description", "cover_url", "page_count")


def clean_genres(genres: Optional[Iterable[str]]) -> List[str]:
    """
    Trim genre names, drop blanks and case-insensitive duplicates.
    Keeps the first spelling and the original order.
    """
    cleaned: List[str] = []
    seen = set()
    for genre in genres or []:
        name = str(genre).strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        cleaned.append(name)
    return cleaned


def _required_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInput(f"{field} is required")
    return text


def _page_count(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInput("page_count must be a non-negative integer")
    return value


def _matches_search(book: Book, needle: str) -> bool:
    return (
        needle in (book.title or "").lower()
        or needle in (book.author or "").lower()
        or any(needle in g for g in normalize_genres(book.genres))
    )


def get_book(db: Session, book_id: UUID) -> Book:
    book = db.query(Book).filter(Book.id == book_id).one_or_none()
    if book is None:
        raise NotFound("Book not found")
    return book


def list_books(
    db: Session,
    search: Optional[str] = None,
    genre: Optional[str] = None,
    sort: str = "title",
    page: int = 1,
    limit: int = 50,
) -> List[Book]:
    """
    Filter, sort and paginate the catalog.

    search matches title, author or any genre (case-insensitive substring);
    genre is an exact, case-insensitive genre filter.
    """
    if sort not in SORT_OPTIONS:
        raise InvalidInput(f"Invalid sort. Must be one of: {', '.join(SORT_OPTIONS)}")
    if page < 1 or limit < 1:
        raise InvalidInput("page and limit must be positive")

    books = db.query(Book).all()

    needle = (search or "").strip().lower()
    if needle:
        books = [b for b in books if _matches_search(b, needle)]

    wanted_genre = (genre or "").strip().lower()
    if wanted_genre:
        books = [b for b in books if wanted_genre in normalize_genres(b.genres)]

    if sort == "rating":
        books = rank_books(books)
    elif sort == "recent":
        books = sorted(books, key=lambda b: (b.created_at, str(b.id)), reverse=True)
    else:
        books = sorted(books, key=lambda b: ((b.title or "").lower(), str(b.id)))

    offset = (page - 1) * limit
    return books[offset:offset + limit]


def list_genres(db: Session) -> List[str]:
    """Distinct genres across the catalog, sorted case-insensitively."""
    by_key: Dict[str, str] = {}
    for (genres,) in db.query(Book.genres).all():
        for name in clean_genres(genres):
            by_key.setdefault(name.lower(), name)
    return [by_key[key] for key in sorted(by_key)]


def create_book(
    db: Session,
    created_by: Optional[User],
    title: str,
    author: str,
    genres: Optional[Iterable[str]] = None,
    description: str = "",
    cover_url: str = "",
    page_count: Optional[int] = 0,
) -> Book:
    book = Book(
        title=_required_text(title, "title"),
        author=_required_text(author, "author"),
        genres=clean_genres(genres),
        description=description or "",
        cover_url=cover_url or "",
        page_count=_page_count(page_count),
        created_by=created_by.id if created_by else None,
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info("Book created: book_id=%s, title=%r, by=%s", book.id, book.title, book.created_by)
    return book


def update_book(db: Session, book_id: UUID, changes: Dict[str, Any]) -> Book:
    """
    Apply a partial update. Unknown keys are rejected; a shrinking page count
    pulls existing reading progress back inside the new bound.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInput(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    book = get_book(db, book_id)

    if "title" in changes:
        book.title = _required_text(changes["title"], "title")
    if "author" in changes:
        book.author = _required_text(changes["author"], "author")
    if "genres" in changes:
        book.genres = clean_genres(changes["genres"])
    if "description" in changes:
        book.description = changes["description"] or ""
    if "cover_url" in changes:
        book.cover_url = changes["cover_url"] or ""
    if "page_count" in changes:
        book.page_count = _page_count(changes["page_count"])
        reclamped = reclamp_progress(db, book)
        if reclamped:
            logger.info("Clamped progress of %s shelf entries for book_id=%s", reclamped, book.id)

    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise Conflict("Book was modified concurrently, reload it and retry")
    db.refresh(book)
    logger.info("Book updated: book_id=%s, fields=%s", book.id, sorted(changes))
    return book


def delete_book(db: Session, book_id: UUID) -> None:
    """Delete a book together with its shelf entries, reviews and likes."""
    book = get_book(db, book_id)
    db.delete(book)
    db.commit()
    logger.info("Book deleted: book_id=%s", book_id)
