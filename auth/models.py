"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these only own the shape.

Layer rule: no imports from api/ or comments/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered commenter.

    username is stored trimmed and compared case-sensitively. email is stored
    trimmed and lower-cased. Both carry UNIQUE constraints in the users table.

    hashed_password is None on the copy the authentication gate attaches to a
    request -- the hash never leaves the store layer for outward use.
    """

    username: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
