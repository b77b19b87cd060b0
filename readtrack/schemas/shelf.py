from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from readtrack.models import ShelfStatus
from readtrack.schemas.book import BookResponse, book_to_response


class SetShelfStatusRequest(BaseModel):
    """Request body for POST /shelf/{book_id}."""
    status: ShelfStatus
    current_page: Optional[int] = Field(None, alias="currentPage")

    class Config:
        populate_by_name = True


class ShelfEntryResponse(BaseModel):
    id: str
    user_id: str
    book_id: str
    status: ShelfStatus
    current_page: int = Field(..., serialization_alias="currentPage")
    created_at: datetime
    updated_at: datetime
    book: BookResponse


class ShelfStatsResponse(BaseModel):
    want_to_read: int
    reading: int
    read: int
    pages_read: int
    pages_in_progress: int


def shelf_entry_to_response(entry) -> ShelfEntryResponse:
    return ShelfEntryResponse(
        id=str(entry.id),
        user_id=str(entry.user_id),
        book_id=str(entry.book_id),
        status=entry.status,
        current_page=entry.current_page,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        book=book_to_response(entry.book),
    )
