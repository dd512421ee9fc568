"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in budget/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, budget/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLES = ("admin", "user", "readonly")
WRITER_ROLES = ("admin", "user")


@dataclass
class User:
    """Represents an authenticated identity in Budget Tracker.

    email is the login identifier and is unique (case-insensitive).

    role decides what the user may do once authenticated:
      admin    -- everything, including user management and deletes
      user     -- read and write budget data
      readonly -- read budget data only

    id is None before the record is written to the database.
    """

    email: str
    first_name: str
    last_name: str
    role: str = "user"
    id: str | None = None
    hashed_password: str | None = None
    is_active: bool = True
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
