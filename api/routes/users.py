"""
api/routes/users.py -- User management REST endpoints.

Routes (all require auth):
  GET    /api/users                       -- list users (admin)
  GET    /api/users/{id}                  -- one user (self or admin)
  POST   /api/users                       -- create user with any role (admin)
  PUT    /api/users/{id}                  -- update profile/role/active flag (admin)
  PUT    /api/users/{id}/change-password  -- self (current password required) or admin
  DELETE /api/users/{id}                  -- delete user (admin)

Guards:
  [M4] PUT blocks demoting or deactivating the last active admin.
  DELETE blocks deleting your own account (and therefore the last admin
  deleting themselves).
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import MessageResponse, PasswordChange, UserCreate, UserResponse, UserUpdate, to_store_fields
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, verify_password

logger = logging.getLogger("budgettracker.api.users")

router = APIRouter(prefix="/users", dependencies=[Depends(get_current_user)])


def _store(request: Request) -> UserStore:
    return request.app.state.user_store


def _get_or_404(store: UserStore, user_id: UUID) -> User:
    user = store.get_by_id(str(user_id))
    if user is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found."})
    return user


@router.get("", response_model=list[UserResponse])
def list_users(request: Request, current_user: User = Depends(require_admin)) -> list[UserResponse]:
    """List all user accounts. Admin only."""
    return [UserResponse.from_user(u) for u in _store(request).list_users()]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Return one user. Non-admins may only look themselves up."""
    if current_user.role != "admin" and current_user.id != str(user_id):
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied. You can only view your own account."},
        )
    return UserResponse.from_user(_get_or_404(_store(request), user_id))


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Create a new user account. Admin only."""
    store = _store(request)
    new_user = User(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role.value,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that email already exists."},
        ) from exc
    logger.info("%s created user %s (%s)", current_user.email, body.email, body.role.value)
    return UserResponse.from_user(store.get_by_id(user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: UUID,
    body: UserUpdate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Update a user's profile, role or active status. Admin only.

    [M4] Removing admin rights from -- or deactivating -- the last active
    admin is refused: nobody would be left to manage accounts.
    """
    store = _store(request)
    target = _get_or_404(store, user_id)
    # Every user column is required, so an explicit null means "leave it".
    updates = {k: v for k, v in to_store_fields(body).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail={"code": "no_changes", "message": "No fields to update."})

    loses_admin = updates.get("role", target.role) != "admin" or updates.get("is_active") is False
    if target.role == "admin" and target.is_active and loses_admin and store.count_active_admins() <= 1:
        raise HTTPException(
            status_code=400,
            detail={"code": "last_admin", "message": "Cannot demote or deactivate the last active admin account."},
        )

    try:
        store.update_user(target.id, **updates)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A user with that email already exists."},
        ) from exc
    return UserResponse.from_user(store.get_by_id(target.id))


@router.put("/{user_id}/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    user_id: UUID,
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Change a password. Users change their own; admins may reset anyone's.

    Changing your own password always requires the current one, admin or not.
    """
    store = _store(request)
    is_self = current_user.id == str(user_id)
    if not is_self and current_user.role != "admin":
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied. You can only change your own password."},
        )
    target = _get_or_404(store, user_id)
    if is_self:
        if not body.current_password or not verify_password(body.current_password, target.hashed_password or ""):
            raise HTTPException(
                status_code=400,
                detail={"code": "wrong_password", "message": "Current password is incorrect."},
            )
    store.set_password(target.id, hash_password(body.new_password))
    logger.info("Password changed for %s by %s", target.email, current_user.email)
    return MessageResponse(message="Password changed successfully.")


@router.delete("/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: UUID,
    current_user: User = Depends(require_admin),
) -> Response:
    """Delete a user account. Admin only; admins cannot delete themselves."""
    store = _store(request)
    target = _get_or_404(store, user_id)
    if target.id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deletion", "message": "You cannot delete your own account."},
        )
    store.delete_user(target.id)
    logger.info("%s deleted user %s", current_user.email, target.email)
    return Response(status_code=204)
