"""
auth/dependencies.py -- Authentication gate and FastAPI Depends() helpers.

The gate is a plain function, authenticate(), that turns an Authorization
header into an explicit outcome:

    Authenticated(user)          -- the only state that lets a request proceed
    Rejected(reason, message)    -- terminal, always HTTP 401

Precedence (first match wins):
  1. header missing / empty                        -> NO_TOKEN
  2. header not "Bearer <token>" (split on " ")    -> NO_TOKEN
  3. signature bad, token expired or malformed     -> INVALID_TOKEN
  4. token valid but user id no longer exists      -> USER_NOT_FOUND

Step 2 is a literal single-space split: "Bearer  <token>" (two spaces) yields
an empty second segment and is treated as NO_TOKEN, not trimmed.

get_current_user() is the FastAPI dependency that runs the gate against the
store on app.state and branches on the outcome.

Layer rule: no imports from api/ or comments/.
  This module may import from fastapi because it is part of the FastAPI
  dependency injection system.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

from fastapi import HTTPException, Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenError, TokenExpiredError, decode_access_token

logger = logging.getLogger("blogweb.auth")

_BEARER_PREFIX = "Bearer"


class RejectReason(str, Enum):
    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"
    USER_NOT_FOUND = "user_not_found"


REJECT_MESSAGES: dict[RejectReason, str] = {
    RejectReason.NO_TOKEN: "Not authorized, no token",
    RejectReason.INVALID_TOKEN: "Not authorized, invalid token",
    RejectReason.USER_NOT_FOUND: "User not found",
}


@dataclass(frozen=True)
class Authenticated:
    user: User


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    message: str


AuthOutcome = Union[Authenticated, Rejected]


def _reject(reason: RejectReason) -> Rejected:
    return Rejected(reason=reason, message=REJECT_MESSAGES[reason])


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token segment of an Authorization header, or None.

    Mirrors the browser client's contract exactly: the header must start with
    "Bearer" and the token is the second element of a split on a single space.
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


def safe_view(user: User) -> User:
    """Return a copy of user with the password hash removed."""
    return dataclasses.replace(user, hashed_password=None)


def authenticate(authorization: str | None, user_store: UserStore) -> AuthOutcome:
    """Run the authentication gate for one request. Never raises for bad input."""
    token = extract_bearer_token(authorization)
    if token is None:
        return _reject(RejectReason.NO_TOKEN)

    try:
        claims = decode_access_token(token)
    except TokenExpiredError:
        logger.info("Rejected expired bearer token")
        return _reject(RejectReason.INVALID_TOKEN)
    except TokenError:
        logger.info("Rejected invalid bearer token")
        return _reject(RejectReason.INVALID_TOKEN)

    user = user_store.get_by_id(claims["id"])
    if user is None:
        logger.info("Rejected token for missing user id=%s", claims["id"])
        return _reject(RejectReason.USER_NOT_FOUND)

    return Authenticated(user=safe_view(user))


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 with the gate's message on rejection.

    Use as a FastAPI dependency:
        @router.post("/comments")
        def route(user: User = Depends(get_current_user)): ...
    """
    user_store: UserStore = request.app.state.user_store
    outcome = authenticate(request.headers.get("Authorization"), user_store)
    if isinstance(outcome, Rejected):
        raise HTTPException(status_code=401, detail=outcome.message)
    return outcome.user
