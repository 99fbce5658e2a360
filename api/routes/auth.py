"""
api/routes/auth.py -- Registration and login REST endpoints.

Routes:
  POST /api/auth/register  -- create account; 201 with safe view + token
  POST /api/auth/login     -- password login; 200 with safe view + token

Security:
  Duplicate username and duplicate email return the same message, so the
  endpoint cannot be used to probe which accounts exist.
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Both endpoints answer with Cache-Control: no-store since they carry a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, LoginRequest, MessageResponse, RegisterRequest
from auth.models import User
from auth.store import DuplicateIdentityError, UserStore
from auth.tokens import authenticate_user, create_access_token

logger = logging.getLogger("blogweb.api")

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public
router = APIRouter()

DUPLICATE_MESSAGE = "User or email already exists"
BAD_CREDENTIALS_MESSAGE = "Invalid credentials"


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return it with a bearer token.

    Validation has already run (RequestValidationError -> 400) by the time
    this body executes, so storage is never touched for bad input.
    """
    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.create_user(body.username, body.email, body.password)
    except DuplicateIdentityError as exc:
        raise HTTPException(status_code=400, detail=DUPLICATE_MESSAGE) from exc

    return _token_response(user, status_code=201)


@router.post(
    "/auth/login",
    response_model=AuthResponse,
    responses={401: {"model": MessageResponse}},
)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password produce the same 401 body.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(status_code=401, content={"message": BAD_CREDENTIALS_MESSAGE})
        resp.headers["Cache-Control"] = "no-store"
        return resp

    return _token_response(user, status_code=200)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _token_response(user: User, status_code: int) -> JSONResponse:
    token = create_access_token(user.id)
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(id=user.id, username=user.username, email=user.email, token=token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
