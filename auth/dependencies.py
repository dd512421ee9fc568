"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes accept exactly one credential: an
"Authorization: Bearer <token>" header carrying a JWT from POST /api/auth/login.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated.
require_admin() / require_writer() / require_roles() add HTTP 403 role checks.

Development bypass: when DEBUG and BYPASS_AUTH are both true, every request
is treated as a synthetic admin so the dashboard can be exercised without a
login. Settings refuses the bypass outside debug mode.

Layer rule: no imports from api/, budget/, or client/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import HTTPException, Request

from auth.models import WRITER_ROLES, User
from auth.tokens import decode_access_token
from core.config import get_settings

logger = logging.getLogger("budgettracker.auth")

_DEV_USER = User(
    id="00000000-0000-0000-0000-000000000001",
    email="dev@example.com",
    first_name="Development",
    last_name="Admin",
    role="admin",
)


def _bearer_token(request: Request) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via its Bearer token.

    Returns the authenticated User on success, None on any failure.
    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    if get_settings().bypass_auth:
        logger.debug("Development mode: authentication bypassed")
        return _DEV_USER

    token = _bearer_token(request)
    if token is None:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    user = request.app.state.user_store.get_by_id(payload["user_id"])
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is not None:
        return user
    if _bearer_token(request) is None:
        message = "Authentication required. Please log in."
    else:
        message = "Invalid or expired token."
    raise HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_roles(*roles: str) -> Callable[[Request], User]:
    """Build a dependency that admits only users holding one of roles.

    Role names are compared case-insensitively. Raises 401 when the request
    is unauthenticated and 403 when the role does not match.
    """
    allowed = {r.lower() for r in roles}

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        if user.role.lower() not in allowed:
            raise HTTPException(
                status_code=403,
                detail={
                    "code": "forbidden",
                    "message": f"Access denied. Required roles: {', '.join(roles)}",
                },
            )
        return user

    return dependency


def require_admin(request: Request) -> User:
    """Require admin role. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    user = get_current_user(request)
    if user.role != "admin":
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied. Admin privileges required."},
        )
    return user


def require_writer(request: Request) -> User:
    """Require a role that may change budget data (admin or user). Readonly gets 403."""
    user = get_current_user(request)
    if user.role not in WRITER_ROLES:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Access denied. User privileges required."},
        )
    return user
