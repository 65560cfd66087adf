"""User management endpoints for the web console."""

from typing import List

from fastapi import APIRouter, status

from track_inspector.core.deps import UserStoreDep
from track_inspector.core.enums import UserRole
from track_inspector.schemas.shared import (
    MessageResponse,
    UserCreate,
    UserResponse,
    UserStatusUpdate,
    UserUpdate,
)


router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(store: UserStoreDep):
    """List all users (passwords are never returned)."""
    return await store.list_users()


@router.get("/maintenance", response_model=List[UserResponse])
async def list_maintenance_users(store: UserStoreDep):
    """
    List the staff that maintenance work can be assigned to.

    The path name is historical: assignable staff are users with the
    ``engineer`` role.
    """
    return await store.list_by_role(UserRole.ENGINEER)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, store: UserStoreDep):
    """
    Create a user account.

    Raises:
        ConflictError (400): If the email is already registered
    """
    return await store.create_user(payload)


@router.put("/{user_id}/status", response_model=UserResponse)
async def update_user_status(user_id: str, payload: UserStatusUpdate, store: UserStoreDep):
    """Activate or deactivate a user."""
    return await store.update_status(user_id, payload.is_active)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, payload: UserUpdate, store: UserStoreDep):
    """Edit user details. Passwords cannot be changed through this endpoint."""
    return await store.update_user(user_id, payload)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, store: UserStoreDep):
    await store.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
