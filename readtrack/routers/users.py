# Admin-only user management

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from readtrack.database import get_db
from readtrack.core.auth import get_admin_user
from readtrack.models import User
from readtrack.schemas.user import UserResponse, user_to_response
from readtrack.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users(
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    return [user_to_response(user) for user in user_service.list_users(db)]


@router.delete("/{user_id}")
def delete_user(
    user_id: UUID,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Delete a user with their shelves, reviews and likes."""
    user_service.delete_user(db, user_id, admin)
    return {"message": "User deleted"}
