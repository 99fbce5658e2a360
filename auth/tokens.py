"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       only the user id plus issued-at / expiry claims. Verification raises a
       TokenError subclass on any failure so callers can tell an expired token
       from a forged one; the gate collapses both into one 401.

  Passwords: bcrypt, used directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email is registered.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses to start
       in production without one.

Layer rule: no imports from api/ or comments/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("blogweb.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

# bcrypt rejects longer inputs; only this many bytes of a password count.
_BCRYPT_MAX_BYTES = 72


class TokenError(Exception):
    """Base class for bearer token verification failures."""


class TokenInvalidError(TokenError):
    """Signature mismatch, malformed structure, or missing claims."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is at or past its exp claim."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Passwords longer than 72 UTF-8 bytes are truncated before hashing, so
    two passwords sharing their first 72 bytes verify against each other.
    """
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Never raises: a malformed hash, a non-string candidate or any other
    bcrypt error is simply a mismatch.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except Exception:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("blogweb_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, expire_seconds: int | None = None) -> str:
    """Encode a signed JWT carrying the user id.

    Args:
        user_id:        Primary key of the user the token speaks for.
        expire_seconds: Validity window in seconds. None uses
                        Settings.token_expire_seconds (30 days by default).
                        Zero or negative windows produce a token that is
                        already expired.
    """
    duration = _settings.token_expire_seconds if expire_seconds is None else expire_seconds
    issued = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "iat": issued,
        "exp": issued + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify a JWT and return {"id": user_id}.

    Raises:
        TokenExpiredError: signature is valid but the token has expired.
        TokenInvalidError: anything else (bad signature, garbage input,
                           missing id or exp claim).
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("token expired") from exc
    except JWTError as exc:
        raise TokenInvalidError(str(exc)) from exc

    # RFC 7519 rejects a token on or after exp; jose only rejects strictly after.
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenInvalidError("token has no usable exp claim")
    if exp <= int(time.time()):
        raise TokenExpiredError("token expired")
    if payload.get("id") is None:
        raise TokenInvalidError("token has no id claim")
    return {"id": payload["id"]}


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
