"""Tests for shelf status transitions and reading progress."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from readtrack.core.errors import InvalidInput, NotFound
from readtrack.models import EventLog, ShelfEntry, ShelfStatus
from readtrack.services import shelf_service


def _entries_for(db: Session, user, book):
    return db.query(ShelfEntry).filter(
        ShelfEntry.user_id == user.id,
        ShelfEntry.book_id == book.id,
    ).all()


def test_set_status_creates_single_entry_listed_with_status(db: Session, user, make_book):
    book = make_book(title="Dune", page_count=412)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.WANT_TO_READ)

    assert entry.status == ShelfStatus.WANT_TO_READ
    assert entry.current_page == 0
    shelf = shelf_service.list_shelf(db, user.id)
    assert [(e.book_id, e.status) for e in shelf] == [(book.id, ShelfStatus.WANT_TO_READ)]
    assert shelf[0].book.title == "Dune"


def test_set_status_is_idempotent(db: Session, user, make_book):
    book = make_book(page_count=100)

    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=10)
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=10)

    entries = _entries_for(db, user, book)
    assert len(entries) == 1
    assert entries[0].status == ShelfStatus.READING
    assert entries[0].current_page == 10


def test_status_accepts_plain_strings(db: Session, user, make_book):
    book = make_book()
    entry = shelf_service.set_shelf_status(db, user.id, book.id, "reading")
    assert entry.status == ShelfStatus.READING


def test_invalid_status_is_rejected(db: Session, user, make_book):
    book = make_book()
    with pytest.raises(InvalidInput):
        shelf_service.set_shelf_status(db, user.id, book.id, "FINISHED")
    assert _entries_for(db, user, book) == []


def test_non_integer_page_is_rejected(db: Session, user, make_book):
    book = make_book(page_count=100)
    with pytest.raises(InvalidInput):
        shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page="12")


def test_missing_book_or_user_raises_not_found(db: Session, user, make_book):
    book = make_book()
    with pytest.raises(NotFound):
        shelf_service.set_shelf_status(db, user.id, uuid4(), ShelfStatus.READ)
    with pytest.raises(NotFound):
        shelf_service.set_shelf_status(db, uuid4(), book.id, ShelfStatus.READ)


def test_progress_override_is_clamped_to_page_count(db: Session, user, make_book):
    book = make_book(page_count=300)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=999999)

    assert entry.current_page == 300


def test_negative_progress_is_clamped_to_zero(db: Session, user, make_book):
    book = make_book(page_count=300)
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=50)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=-5)

    assert entry.current_page == 0


def test_unknown_page_count_only_clamps_lower_bound(db: Session, user, make_book):
    book = make_book(page_count=0)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=1234)

    assert entry.current_page == 1234


def test_override_ignored_for_new_entry_unless_reading(db: Session, user, make_book):
    book = make_book(page_count=300)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.WANT_TO_READ, current_page=40)

    assert entry.current_page == 0


def test_existing_entry_keeps_page_without_override(db: Session, user, make_book):
    book = make_book(page_count=300)
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=120)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READ)

    assert entry.status == ShelfStatus.READ
    assert entry.current_page == 120


def test_backward_transition_is_allowed(db: Session, user, make_book):
    book = make_book()
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READ)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.WANT_TO_READ)

    assert entry.status == ShelfStatus.WANT_TO_READ
    assert len(_entries_for(db, user, book)) == 1


def test_set_status_refreshes_updated_at(db: Session, user, make_book):
    book = make_book()
    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.WANT_TO_READ)
    entry.updated_at = datetime(2000, 1, 1)
    db.commit()

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING)

    assert entry.updated_at > datetime(2000, 1, 1)


def test_list_shelf_orders_most_recently_updated_first(db: Session, user, make_book):
    older = make_book(title="Older")
    newer = make_book(title="Newer")
    first = shelf_service.set_shelf_status(db, user.id, older.id, ShelfStatus.READ)
    second = shelf_service.set_shelf_status(db, user.id, newer.id, ShelfStatus.READING)
    now = datetime.utcnow()
    first.updated_at = now
    second.updated_at = now - timedelta(minutes=5)
    db.commit()

    shelf = shelf_service.list_shelf(db, user.id)

    assert [e.book.title for e in shelf] == ["Older", "Newer"]


def test_list_shelf_filters_by_status_and_user(db: Session, user, make_user, make_book):
    other = make_user()
    a = make_book(title="A")
    b = make_book(title="B")
    shelf_service.set_shelf_status(db, user.id, a.id, ShelfStatus.READ)
    shelf_service.set_shelf_status(db, user.id, b.id, ShelfStatus.READING)
    shelf_service.set_shelf_status(db, other.id, a.id, ShelfStatus.READING)

    reading = shelf_service.list_shelf(db, user.id, status=ShelfStatus.READING)

    assert [e.book.title for e in reading] == ["B"]


def test_get_progress_requires_shelf_entry(db: Session, user, make_book):
    book = make_book(page_count=250)
    with pytest.raises(NotFound):
        shelf_service.get_progress(db, user.id, book.id)

    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=42)

    progress = shelf_service.get_progress(db, user.id, book.id)
    assert progress.current_page == 42
    assert progress.total_pages == 250


def test_update_progress_clamps_and_keeps_status(db: Session, user, make_book):
    book = make_book(page_count=250)
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.WANT_TO_READ)

    progress = shelf_service.update_progress(db, user.id, book.id, 900)

    assert progress == (250, 250)
    entry = _entries_for(db, user, book)[0]
    assert entry.status == ShelfStatus.WANT_TO_READ


def test_update_progress_without_entry_raises_not_found(db: Session, user, make_book):
    book = make_book(page_count=250)
    with pytest.raises(NotFound):
        shelf_service.update_progress(db, user.id, book.id, 10)


def test_shelf_changes_are_logged_as_events(db: Session, user, make_book):
    book = make_book()
    shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING)

    events = db.query(EventLog).filter(EventLog.event_name == "shelf_status_changed").all()

    assert len(events) == 1
    assert events[0].user_id == user.id
    assert events[0].properties["book_id"] == str(book.id)
    assert events[0].properties["status"] == "READING"


def test_shelf_stats(db: Session, user, make_book):
    read = make_book(title="Read", page_count=200)
    reading = make_book(title="Reading", page_count=300)
    want = make_book(title="Want", page_count=150)
    shelf_service.set_shelf_status(db, user.id, read.id, ShelfStatus.READ)
    shelf_service.set_shelf_status(db, user.id, reading.id, ShelfStatus.READING, current_page=75)
    shelf_service.set_shelf_status(db, user.id, want.id, ShelfStatus.WANT_TO_READ)

    stats = shelf_service.shelf_stats(shelf_service.list_shelf(db, user.id))

    assert stats == {
        "want_to_read": 1,
        "reading": 1,
        "read": 1,
        "pages_read": 200,
        "pages_in_progress": 75,
    }


def test_clamp_page():
    assert shelf_service.clamp_page(50, 300) == 50
    assert shelf_service.clamp_page(301, 300) == 300
    assert shelf_service.clamp_page(-1, 300) == 0
    assert shelf_service.clamp_page(500, 0) == 500


def test_entry_created_concurrently_is_updated_instead(db: Session, session_factory, user, make_book, monkeypatch):
    book = make_book(page_count=100)
    other = session_factory()
    try:
        other.add(ShelfEntry(user_id=user.id, book_id=book.id, status=ShelfStatus.WANT_TO_READ, current_page=0))
        other.commit()
    finally:
        other.close()

    real_find = shelf_service._find_entry
    lookups = {"n": 0}

    def find_missing_first(session, user_id, book_id):
        # The first lookup happens before the competing insert landed
        lookups["n"] += 1
        if lookups["n"] == 1:
            return None
        return real_find(session, user_id, book_id)

    monkeypatch.setattr(shelf_service, "_find_entry", find_missing_first)

    entry = shelf_service.set_shelf_status(db, user.id, book.id, ShelfStatus.READING, current_page=500)

    assert entry.status == ShelfStatus.READING
    assert entry.current_page == 100
    entries = _entries_for(db, user, book)
    assert len(entries) == 1
    event = db.query(EventLog).filter(EventLog.event_name == "shelf_status_changed").one()
    assert event.properties["created"] is False


def test_list_shelf_breaks_timestamp_ties_by_id(db: Session, user, make_book):
    entries = [
        shelf_service.set_shelf_status(db, user.id, make_book(title=f"Book {i}").id, ShelfStatus.READ)
        for i in range(3)
    ]
    same_moment = datetime(2024, 1, 1, 12, 0, 0)
    for entry in entries:
        entry.created_at = same_moment
        entry.updated_at = same_moment
    db.commit()

    expected = sorted((e.id for e in entries), key=lambda entry_id: entry_id.hex, reverse=True)

    assert [e.id for e in shelf_service.list_shelf(db, user.id)] == expected
    assert [e.id for e in shelf_service.list_shelf(db, user.id)] == expected
