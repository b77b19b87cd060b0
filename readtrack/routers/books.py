from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from readtrack.database import get_db
from readtrack.models import User
from readtrack.schemas.book import (
    BookCreate,
    BookResponse,
    BookUpdate,
    ProgressResponse,
    ProgressUpdate,
    book_to_response,
)
from readtrack.core.auth import get_admin_user, get_current_user
from readtrack.services import catalog_service, recommendation_engine, shelf_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.get("", response_model=List[BookResponse])
def get_books(
    search: Optional[str] = Query(None, description="Search in title, author or genres"),
    genre: Optional[str] = Query(None, description="Filter by genre"),
    sort: str = Query("title", description="Sort: title, rating or recent"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Get paginated list of books with optional filters."""
    books = catalog_service.list_books(
        db,
        search=search,
        genre=genre,
        sort=sort,
        page=page,
        limit=limit,
    )
    return [book_to_response(book) for book in books]


@router.get("/genres", response_model=List[str])
def get_genres(db: Session = Depends(get_db)):
    return catalog_service.list_genres(db)


@router.get("/me/recommended", response_model=List[BookResponse])
def get_recommended_books(
    limit: Optional[int] = Query(None, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Books picked from the user's favourite genres, backfilled with the best rated."""
    books = recommendation_engine.recommend(db, user.id, limit=limit)
    return [book_to_response(book) for book in books]


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    book = catalog_service.create_book(db, created_by=admin, **payload.model_dump())
    return book_to_response(book)


@router.get("/{book_id}", response_model=BookResponse)
def get_book(book_id: UUID, db: Session = Depends(get_db)):
    """Get full details of a specific book."""
    return book_to_response(catalog_service.get_book(db, book_id))


@router.put("/{book_id}", response_model=BookResponse)
def update_book(
    book_id: UUID,
    payload: BookUpdate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    book = catalog_service.update_book(db, book_id, changes)
    return book_to_response(book)


@router.delete("/{book_id}")
def delete_book(
    book_id: UUID,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    catalog_service.delete_book(db, book_id)
    return {"message": "Book deleted"}


@router.get("/{book_id}/similar", response_model=List[BookResponse])
def get_similar_books(book_id: UUID, db: Session = Depends(get_db)):
    books = recommendation_engine.similar_books(db, book_id)
    return [book_to_response(book) for book in books]


@router.get("/{book_id}/progress", response_model=ProgressResponse)
def get_progress(
    book_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress = shelf_service.get_progress(db, user.id, book_id)
    return ProgressResponse(progress=progress.current_page, total_pages=progress.total_pages)


@router.put("/{book_id}/progress", response_model=ProgressResponse)
def update_progress(
    book_id: UUID,
    payload: ProgressUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Move the reading position of a shelved book; values are clamped to the page count."""
    progress = shelf_service.update_progress(db, user.id, book_id, payload.progress)
    return ProgressResponse(progress=progress.current_page, total_pages=progress.total_pages)
