from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum, JSON, Float, Table, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
import sqlalchemy as sa
from readtrack.database import Base


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class ShelfStatus(str, enum.Enum):
    WANT_TO_READ = "WANT_TO_READ"
    READING = "READING"
    READ = "READ"


review_likes = Table(
    "review_likes",
    Base.metadata,
    Column("review_id", Uuid, ForeignKey("reviews.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-cased
    password_hash = Column(String, nullable=False)
    role = Column(
        SQLEnum(
            UserRole,
            name="userrole",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=UserRole.USER,
    )
    favourite_genres = Column(JSON, nullable=False, default=list)
    bio = Column(Text, nullable=False, default="")
    avatar_url = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    shelf_entries = relationship("ShelfEntry", back_populates="user", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")
    liked_reviews = relationship("Review", secondary=review_likes, back_populates="liked_by")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Book(Base):
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    author = Column(String, nullable=False)
    genres = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=False, default="")
    cover_url = Column(String, nullable=False, default="")
    page_count = Column(Integer, nullable=False, default=0)  # 0 = unknown
    # Derived from the current review set, see services.review_service
    average_rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    # Revision counter; every UPDATE is a compare-and-set on it
    version = Column(Integer, nullable=False)

    # Relationships
    reviews = relationship(
        "Review",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="Review.created_at",
    )
    shelf_entries = relationship("ShelfEntry", back_populates="book", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("page_count >= 0", name="ck_books_page_count_non_negative"),
    )


class ShelfEntry(Base):
    """
    Latest shelf status and reading progress for each user-book pair.
    """
    __tablename__ = "shelf_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Uuid, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(ShelfStatus, name="shelfstatus"), nullable=False)
    current_page = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="shelf_entries")
    book = relationship("Book", back_populates="shelf_entries")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_shelf_entries_user_book"),
        CheckConstraint("current_page >= 0", name="ck_shelf_entries_current_page_non_negative"),
    )


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    book_id = Column(Uuid, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    book = relationship("Book", back_populates="reviews")
    user = relationship("User", back_populates="reviews")
    liked_by = relationship("User", secondary=review_likes, back_populates="liked_reviews")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_reviews_user_book"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    @property
    def like_count(self) -> int:
        return len(self.liked_by)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True)
    user_id = Column(Uuid, nullable=True, index=True)
    event_name = Column(String, nullable=False, index=True)
    properties = Column(JSON, nullable=True)
