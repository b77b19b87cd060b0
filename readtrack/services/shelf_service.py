"""
Shelf tracking: one entry per (user, book) holding a shelf status and page progress.

Status transitions are free: any status may follow any other, including
READ -> WANT_TO_READ. Client-supplied page numbers are clamped to
[0, page_count] (only the lower bound applies while page_count is 0/unknown).
"""
import logging
from datetime import datetime
from typing import List, NamedTuple, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from readtrack.core.errors import InvalidInput, NotFound
from readtrack.models import Book, ShelfEntry, ShelfStatus, User
from readtrack.utils.instrumentation import log_event

logger = logging.getLogger(__name__)


class Progress(NamedTuple):
    current_page: int
    total_pages: int


def clamp_page(page: int, page_count: int) -> int:
    """Clamp a page number to [0, page_count]; page_count <= 0 means unknown (no upper bound)."""
    page = max(0, page)
    if page_count and page_count > 0:
        page = min(page, page_count)
    return page


def _coerce_status(value) -> ShelfStatus:
    if isinstance(value, ShelfStatus):
        return value
    try:
        return ShelfStatus(str(value).strip().upper())
    except ValueError:
        valid = ", ".join(s.value for s in ShelfStatus)
        raise InvalidInput(f"Invalid status. Must be one of: {valid}")


def _coerce_page(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput("Page numbers must be integers")
    return value


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


def _get_book(db: Session, book_id: UUID) -> Book:
    book = db.query(Book).filter(Book.id == book_id).one_or_none()
    if book is None:
        raise NotFound("Book not found")
    return book


def _find_entry(db: Session, user_id: UUID, book_id: UUID) -> Optional[ShelfEntry]:
    return db.query(ShelfEntry).filter(
        ShelfEntry.user_id == user_id,
        ShelfEntry.book_id == book_id,
    ).one_or_none()


def _apply_update(entry: ShelfEntry, status: ShelfStatus, current_page: Optional[int], page_count: int) -> None:
    entry.status = status
    if current_page is not None:
        entry.current_page = clamp_page(current_page, page_count)
    entry.updated_at = datetime.utcnow()


def set_shelf_status(
    db: Session,
    user_id: UUID,
    book_id: UUID,
    status,
    current_page: Optional[int] = None,
) -> ShelfEntry:
    """
    Create or update the shelf entry for (user, book).

    A new entry starts at page 0 unless an override is given together with
    READING. An existing entry keeps its page unless an override is given.

    Raises:
        NotFound: user or book does not exist
        InvalidInput: status is not a ShelfStatus, or the page is not an integer
    """
    status = _coerce_status(status)
    if current_page is not None:
        current_page = _coerce_page(current_page)

    user = _get_user(db, user_id)
    book = _get_book(db, book_id)

    entry = _find_entry(db, user.id, book.id)
    created = entry is None
    if created:
        page = 0
        if current_page is not None and status == ShelfStatus.READING:
            page = clamp_page(current_page, book.page_count)
        now = datetime.utcnow()
        entry = ShelfEntry(
            user_id=user.id,
            book_id=book.id,
            status=status,
            current_page=page,
            created_at=now,
            updated_at=now,
        )
        db.add(entry)
        try:
            db.flush()
        except IntegrityError:
            # Another request created the pair first; update the winner instead
            db.rollback()
            logger.info("Shelf entry race lost: user_id=%s, book_id=%s", user_id, book_id)
            entry = _find_entry(db, user_id, book_id)
            if entry is None:
                raise
            created = False
            _apply_update(entry, status, current_page, entry.book.page_count)
    else:
        _apply_update(entry, status, current_page, book.page_count)

    log_event(
        db=db,
        event_name="shelf_status_changed",
        user_id=user_id,
        properties={
            "book_id": book_id,
            "status": status.value,
            "current_page": entry.current_page,
            "created": created,
        },
    )
    db.commit()
    db.refresh(entry)

    logger.info(
        "Shelf status set: user_id=%s, book_id=%s, status=%s, current_page=%s",
        user_id,
        book_id,
        entry.status.value,
        entry.current_page,
    )
    return entry


def list_shelf(db: Session, user_id: UUID, status=None) -> List[ShelfEntry]:
    """All shelf entries of a user with their books, most recently touched first."""
    _get_user(db, user_id)

    query = db.query(ShelfEntry).options(joinedload(ShelfEntry.book)).filter(
        ShelfEntry.user_id == user_id
    )
    if status is not None:
        query = query.filter(ShelfEntry.status == _coerce_status(status))

    return query.order_by(
        ShelfEntry.updated_at.desc(),
        ShelfEntry.created_at.desc(),
        ShelfEntry.id.desc(),
    ).all()


def get_progress(db: Session, user_id: UUID, book_id: UUID) -> Progress:
    entry = _find_entry(db, user_id, book_id)
    if entry is None:
        raise NotFound("Book not on any of your shelves")
    return Progress(current_page=entry.current_page, total_pages=entry.book.page_count or 0)


def update_progress(db: Session, user_id: UUID, book_id: UUID, progress: int) -> Progress:
    """
    Set the current page of an existing shelf entry without touching its status.

    Raises:
        NotFound: the book is not on any of the user's shelves
    """
    progress = _coerce_page(progress)
    entry = _find_entry(db, user_id, book_id)
    if entry is None:
        raise NotFound("Book not on any of your shelves")

    entry.current_page = clamp_page(progress, entry.book.page_count)
    entry.updated_at = datetime.utcnow()
    log_event(
        db=db,
        event_name="reading_progress_updated",
        user_id=user_id,
        properties={"book_id": book_id, "current_page": entry.current_page},
    )
    db.commit()
    db.refresh(entry)
    return Progress(current_page=entry.current_page, total_pages=entry.book.page_count or 0)


def reclamp_progress(db: Session, book: Book) -> int:
    """
    Pull every shelf entry of a book back inside [0, page_count] after the
    page count shrank. Does not commit. Returns the number of entries changed.
    """
    if not book.page_count or book.page_count <= 0:
        return 0

    changed = 0
    for entry in db.query(ShelfEntry).filter(
        ShelfEntry.book_id == book.id,
        ShelfEntry.current_page > book.page_count,
    ):
        entry.current_page = book.page_count
        changed += 1
    return changed


def shelf_stats(entries: List[ShelfEntry]) -> dict:
    """Counts per shelf plus pages read (finished books) and pages in progress."""
    stats = {
        "want_to_read": 0,
        "reading": 0,
        "read": 0,
        "pages_read": 0,
        "pages_in_progress": 0,
    }
    for entry in entries:
        if entry.status == ShelfStatus.WANT_TO_READ:
            stats["want_to_read"] += 1
        elif entry.status == ShelfStatus.READING:
            stats["reading"] += 1
            stats["pages_in_progress"] += entry.current_page or 0
        elif entry.status == ShelfStatus.READ:
            stats["read"] += 1
            stats["pages_read"] += entry.book.page_count or 0
    return stats
