# readtrack/scripts/seed.py

"""
Seed a ReadTrack database with an admin, a regular user and a starter catalog.

Usage examples:

  # Create tables if needed and add whatever is missing
  python -m readtrack.scripts.seed

  # Seed books from a JSON file (list of objects with title, author, genres, ...)
  python -m readtrack.scripts.seed --file books.json

  # Wipe users and books first
  python -m readtrack.scripts.seed --reset
"""

import argparse
import json
import logging
from pathlib import Path

from sqlalchemy.orm import Session

from readtrack.database import SessionLocal, init_db
from readtrack import models
from readtrack.services import catalog_service, user_service

logger = logging.getLogger("readtrack.seed")

DEFAULT_ADMIN = {"name": "Admin", "email": "admin@readtrack.example.com", "password": "Admin123!"}
DEFAULT_USER = {"name": "User", "email": "user@readtrack.example.com", "password": "User1234!"}

DEFAULT_BOOKS = [
    {"title": "Dune", "author": "Frank Herbert", "genres": ["Sci-Fi"], "description": "Classic sci-fi", "page_count": 412},
    {"title": "The Alchemist", "author": "Paulo Coelho", "genres": ["Philosophy"], "description": "Popular", "page_count": 208},
    {"title": "Foundation", "author": "Isaac Asimov", "genres": ["Sci-Fi"], "description": "", "page_count": 255},
    {"title": "Pride and Prejudice", "author": "Jane Austen", "genres": ["Romance", "Classics"], "description": "", "page_count": 432},
]


def _load_books_from_file(path: Path) -> list[dict]:
    """Load a JSON list of books."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Expected list of books in {path}, got {type(data)}")

    return data


def _ensure_user(db: Session, account: dict, role: models.UserRole) -> models.User:
    existing = user_service.get_user_by_email(db, account["email"])
    if existing:
        logger.info("User exists, skipping: %s", account["email"])
        return existing
    return user_service.register_user(db, account["name"], account["email"], account["password"], role=role)


def seed(db: Session, books: list[dict], reset: bool = False) -> int:
    """Returns the number of books created."""
    if reset:
        db.query(models.User).delete()
        db.query(models.Book).delete()
        db.commit()
        logger.info("Existing users and books removed")

    admin = _ensure_user(db, DEFAULT_ADMIN, models.UserRole.ADMIN)
    _ensure_user(db, DEFAULT_USER, models.UserRole.USER)

    created = 0
    for data in books:
        # Same title + author counts as the same book
        existing = db.query(models.Book).filter(
            models.Book.title == data["title"],
            models.Book.author == data["author"],
        ).first()
        if existing:
            continue

        catalog_service.create_book(
            db,
            created_by=admin,
            title=data["title"],
            author=data["author"],
            genres=data.get("genres"),
            description=data.get("description", ""),
            cover_url=data.get("cover_url", ""),
            page_count=data.get("page_count", 0),
        )
        created += 1

    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the ReadTrack database")
    parser.add_argument("--file", type=Path, help="JSON file with a list of books")
    parser.add_argument("--reset", action="store_true", help="Delete users and books before seeding")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    books = _load_books_from_file(args.file) if args.file else DEFAULT_BOOKS

    init_db()
    db = SessionLocal()
    try:
        created = seed(db, books, reset=args.reset)
    finally:
        db.close()

    logger.info("Seed completed: %s new books", created)


if __name__ == "__main__":
    main()
