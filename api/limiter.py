"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware) and the route
modules (to apply per-route limits with @limiter.limit()).

A single shared instance keeps one in-memory counter store for every route.
Per-module instances would each count separately and never trip.

login_limit is the credential-guessing limit shared by POST /auth/login and
POST /auth/register; it comes from LOGIN_RATE_LIMIT.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

login_limit: str = get_settings().login_rate_limit
