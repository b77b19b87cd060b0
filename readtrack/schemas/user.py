from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from readtrack.models import UserRole

PASSWORD_SPECIALS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        """At least 8 chars with upper case, lower case, a digit and a special character."""
        problems = []
        if len(value) < 8:
            problems.append("at least 8 characters")
        if not any(c.isupper() for c in value):
            problems.append("an uppercase letter")
        if not any(c.islower() for c in value):
            problems.append("a lowercase letter")
        if not any(c.isdigit() for c in value):
            problems.append("a number")
        if not any(c in PASSWORD_SPECIALS for c in value):
            problems.append("a special character")
        if problems:
            raise ValueError("Password must contain " + ", ".join(problems))
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    favourite_genres: list[str]
    bio: str
    avatar_url: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    favourite_genres: Optional[list[str]] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


def user_to_response(user) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        role=user.role,
        favourite_genres=list(user.favourite_genres or []),
        bio=user.bio or "",
        avatar_url=user.avatar_url or "",
        created_at=user.created_at,
    )
