"""
comments/store.py -- SQLAlchemy-backed persistence layer for comments.

Uses SQLAlchemy Core (not ORM) so the dataclass in comments/models.py remains
the authoritative domain representation.

Ordering:
  The feed is ordered by the autoincrement primary key, newest first. The
  key is assigned in insertion order and always indexed; wall-clock
  created_at strings are kept for display only and never sorted on.

Pattern: Repository + Data Mapper. CommentStore is the repository;
_row_to_comment is the mapper.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CommentStore(settings.database_url)
    comment = store.create_comment(Comment(content="hi", author=1, author_username="alice"))
    feed = store.list_comments()
    store.delete_comment(comment.id)
    store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from comments.models import Comment

logger = logging.getLogger("blogweb.comments")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("content", Text, nullable=False),
    Column("author", Integer, nullable=False, index=True),
    Column("author_username", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    # AUTOINCREMENT keyword: SQLite never reuses the id of a deleted newest row.
    sqlite_autoincrement=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CommentStore:
    """Repository for Comment entities. Comments are created and deleted, never edited."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_comment(self, comment: Comment) -> Comment:
        """Insert a comment and return it with id and timestamps filled in."""
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _comments.insert().values(
                    content=comment.content,
                    author=comment.author,
                    author_username=comment.author_username,
                    created_at=now,
                    updated_at=now,
                )
            )
            comment_id = result.inserted_primary_key[0]
        return Comment(
            id=comment_id,
            content=comment.content,
            author=comment.author,
            author_username=comment.author_username,
            created_at=now,
            updated_at=now,
        )

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self.engine.connect() as conn:
            row = conn.execute(_comments.select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self) -> list[Comment]:
        """Return every comment, newest first (descending id)."""
        with self.engine.connect() as conn:
            rows = conn.execute(_comments.select().order_by(_comments.c.id.desc())).fetchall()
        return [_row_to_comment(r) for r in rows]

    def delete_comment(self, comment_id: int) -> bool:
        """Delete one comment. Returns True if a row was removed.

        Ownership is NOT checked here -- the route applies auth.policy first.
        """
        with self.engine.begin() as conn:
            result = conn.execute(_comments.delete().where(_comments.c.id == comment_id))
        return result.rowcount > 0

    def delete_by_author_username_prefix(self, prefix: str) -> int:
        """Delete comments whose author_username snapshot starts with prefix,
        ignoring case.

        Returns the number of comments removed. Maintenance cleanup only.
        """
        with self.engine.begin() as conn:
            rows = conn.execute(_comments.select()).fetchall()
            ids = [r.id for r in rows if r.author_username.lower().startswith(prefix.lower())]
            if ids:
                conn.execute(_comments.delete().where(_comments.c.id.in_(ids)))
        if ids:
            logger.info("Deleted %d comments with author prefix %r", len(ids), prefix)
        return len(ids)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        content=row.content,
        author=row.author,
        author_username=row.author_username,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
