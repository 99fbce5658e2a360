"""
comments/models.py -- Domain dataclass for the public comment feed.

A pure data container with zero logic. Validation happens at the API layer
(api/models.py) and persistence in comments/store.py.

Separation of concerns: comments/ does not import auth/. The author is a
back-reference by id plus a username snapshot, not an ownership link.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Comment:
    """One comment on the feed.

    author_username is copied from the author at creation time and is not
    kept in sync if the author later renames themselves.

    id is None before the record is written to the database. Once assigned
    it is monotonic and is the feed's only sort key.
    """

    content: str
    author: int
    author_username: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
