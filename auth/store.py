"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and dependency code never touches SQL directly.

Uniqueness:
  UNIQUE(username) and UNIQUE(email) live in the schema, so the check and the
  insert are one atomic statement. Two concurrent registrations with the same
  email cannot both succeed -- the loser gets IntegrityError, which the store
  turns into DuplicateIdentityError. There is deliberately no "SELECT then
  INSERT" pre-check.

Normalization:
  username is trimmed; email is trimmed and lower-cased. Lookups by email
  apply the same normalization so "  Bob@Example.COM " finds bob@example.com.

Security:
  All queries use bound parameters. No f-strings in SQL.
  create_user() and update_user() hash passwords before they reach the DB.

Layer rule: no imports from api/ or comments/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.tokens import hash_password

logger = logging.getLogger("blogweb.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


class DuplicateIdentityError(Exception):
    """Raised when a username or email collides with an existing account.

    The message never says which of the two collided; callers surface it as a
    generic conflict to avoid account enumeration.
    """


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_username(username: str) -> str:
    return username.strip()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(settings.database_url)
        user = store.create_user("alice", "alice@example.com", "s3cret!")
        same = store.get_by_email("ALICE@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, username: str, email: str, password: str) -> User:
        """Insert a new user and return it (hash included -- callers build the safe view).

        Raises DuplicateIdentityError if the username or email already exists,
        including when a concurrent request wins the race for the same value.
        """
        now = _now_iso()
        values = {
            "username": normalize_username(username),
            "email": normalize_email(email),
            "hashed_password": hash_password(password),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.insert().values(**values))
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateIdentityError("User or email already exists") from exc
        logger.info("Created user id=%s", user_id)
        return User(id=user_id, **values)

    def update_user(self, user_id: int, username: str | None = None, password: str | None = None) -> bool:
        """Update username and/or password, bumping updated_at.

        The password is re-hashed only when a new one is supplied; otherwise
        the stored hash is left untouched.

        Returns True if a row was updated, False if user_id was not found.
        Raises DuplicateIdentityError on a username collision.
        """
        fields: dict = {"updated_at": _now_iso()}
        if username is not None:
            fields["username"] = normalize_username(username)
        if password is not None:
            fields["hashed_password"] = hash_password(password)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
        except IntegrityError as exc:
            raise DuplicateIdentityError("User or email already exists") from exc
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Tokens already issued for the user stay cryptographically valid; the
        authentication gate rejects them because the lookup comes back empty.
        """
        with self.engine.begin() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    def delete_users_with_prefix(self, prefix: str) -> list[int]:
        """Delete every user whose username starts with prefix. Returns the deleted ids.

        Used by the maintenance cleanup endpoint to purge end-to-end test accounts.
        The prefix is matched with startswith in Python rather than LIKE so
        underscores in the prefix are literal. The match ignores case.
        """
        with self.engine.begin() as conn:
            rows = conn.execute(select(_users.c.id, _users.c.username)).fetchall()
            ids = [row.id for row in rows if row.username.lower().startswith(prefix.lower())]
            if ids:
                conn.execute(_users.delete().where(_users.c.id.in_(ids)))
        return ids

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (normalized). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive, trimmed). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where(_users.c.username == normalize_username(username))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("User store ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
