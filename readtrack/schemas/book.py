from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class BookResponse(BaseModel):
    id: str
    title: str
    author: str
    genres: list[str]
    description: str
    cover_url: str
    page_count: int
    average_rating: float
    rating_count: int
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    genres: list[str] = []
    description: str = ""
    cover_url: str = ""
    page_count: int = Field(0, ge=0)


class BookUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    genres: Optional[list[str]] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)


class ProgressUpdate(BaseModel):
    progress: int


class ProgressResponse(BaseModel):
    progress: int
    total_pages: int = Field(..., serialization_alias="totalPages")


def book_to_response(book) -> BookResponse:
    """Convert a Book row to its API shape, UUIDs as strings."""
    return BookResponse(
        id=str(book.id),
        title=book.title,
        author=book.author,
        genres=list(book.genres or []),
        description=book.description or "",
        cover_url=book.cover_url or "",
        page_count=book.page_count or 0,
        average_rating=book.average_rating or 0.0,
        rating_count=book.rating_count or 0,
        created_by=str(book.created_by) if book.created_by else None,
        created_at=book.created_at,
        updated_at=book.updated_at,
    )
