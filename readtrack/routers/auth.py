from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from readtrack.database import get_db
from readtrack.models import User
from readtrack.schemas.user import ProfileUpdate, Token, UserCreate, UserLogin, UserResponse, user_to_response
from readtrack.core.auth import get_current_user, issue_token_for
from readtrack.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user. New accounts always get the plain user role."""
    user = user_service.register_user(
        db,
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
    )
    return Token(access_token=issue_token_for(user), user=user_to_response(user))


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login and get an access token."""
    user = user_service.authenticate(db, credentials.email, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=issue_token_for(user), user=user_to_response(user))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return user_to_response(user)


@router.put("/me", response_model=UserResponse)
def update_me(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name, bio, avatar and favourite genres of the current user."""
    user = user_service.update_profile(db, user, **payload.model_dump(exclude_unset=True))
    return user_to_response(user)
