"""
Shelf endpoints: put a book on a shelf, list the current user's shelves.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from readtrack.database import get_db
from readtrack.core.auth import get_current_user
from readtrack.models import ShelfStatus, User
from readtrack.schemas.shelf import (
    SetShelfStatusRequest,
    ShelfEntryResponse,
    ShelfStatsResponse,
    shelf_entry_to_response,
)
from readtrack.services import shelf_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/shelf", tags=["shelf"])


@router.get("/mine", response_model=List[ShelfEntryResponse])
def get_my_shelf(
    status: Optional[ShelfStatus] = Query(None, description="Only entries on this shelf"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Shelf entries with their books, most recently updated first."""
    entries = shelf_service.list_shelf(db, user.id, status=status)
    return [shelf_entry_to_response(entry) for entry in entries]


@router.get("/mine/stats", response_model=ShelfStatsResponse)
def get_my_shelf_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entries = shelf_service.list_shelf(db, user.id)
    return ShelfStatsResponse(**shelf_service.shelf_stats(entries))


@router.post("/{book_id}", response_model=ShelfEntryResponse)
def set_shelf_status(
    book_id: UUID,
    payload: SetShelfStatusRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Set or update the shelf status of a book for the current user.

    currentPage is optional; it is clamped to the book's page count.
    """
    entry = shelf_service.set_shelf_status(
        db,
        user.id,
        book_id,
        payload.status,
        current_page=payload.current_page,
    )
    return shelf_entry_to_response(entry)
