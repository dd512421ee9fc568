"""
api/routes/auth.py -- Token issuing endpoints.

Routes:
  POST /api/auth/register  -- self-service account creation (role "user")
  POST /api/auth/login     -- email/password login; returns a bearer token
  GET  /api/auth/profile   -- current user (requires auth)

The token goes back in the JSON body only. Clients keep it in their session
store and send it as "Authorization: Bearer <token>"; any 401 from a
protected route tells them the session is over.

Security:
  [H2] /login and /register are rate-limited per IP (LOGIN_RATE_LIMIT).
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings

logger = logging.getLogger("budgettracker.api.auth")

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/auth/profile:  requires auth (get_current_user)
router = APIRouter(prefix="/auth")


@limiter.limit(login_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a new account with the default "user" role."""
    user_store: UserStore = request.app.state.user_store
    new_user = User(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "conflict", "message": "User with this email already exists."},
        ) from exc
    logger.info("Registered user %s", body.email)
    return UserResponse.from_user(user_store.get_by_id(user_id))


@limiter.limit(login_limit)  # [H2]
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token.

    Wrong email and wrong password produce the same "bad_credentials" error
    so the response does not reveal which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.info("Failed login for %s", body.email)
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="bad_credentials", message="Invalid email or password.")
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    user_store.touch_last_login(user.id)
    user = user_store.get_by_id(user.id)
    token = create_access_token(user.id, user.email, user.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=get_settings().token_expire_seconds,
            user=UserResponse.from_user(user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/profile", response_model=UserResponse)
def profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the currently authenticated user."""
    return UserResponse.from_user(current_user)
