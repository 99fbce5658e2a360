"""
API request and response models for BlogWEB REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
comments/models.py, which own the internal domain representation. Route
handlers map between the two.

Request validation:
  Every request field defaults to "" with validate_default=True, so a missing
  field runs through the same validator as an empty one and produces the same
  human-readable message. Validators raise PydanticCustomError rather than
  ValueError so the message reaches the client verbatim (no "Value error, "
  prefix). Pydantic collects every field's failure in one pass, which gives
  the batched {errors: [...]} response for free.
"""

from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from comments.models import Comment

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6
COMMENT_MAX_LENGTH = 1000


def _check_email(value: str) -> str:
    value = value.strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email_invalid", "Invalid email", {}) from None
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    username: str = Field(default="", validate_default=True)
    email: str = Field(default="", validate_default=True)
    password: str = Field(default="", validate_default=True)

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < USERNAME_MIN_LENGTH:
            raise PydanticCustomError(
                "username_too_short",
                "Username must be at least {min_length} characters",
                {"min_length": USERNAME_MIN_LENGTH},
            )
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        # Not stripped: leading/trailing spaces are part of the secret.
        if len(value) < PASSWORD_MIN_LENGTH:
            raise PydanticCustomError(
                "password_too_short",
                "Password must be at least {min_length} characters",
                {"min_length": PASSWORD_MIN_LENGTH},
            )
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login. No strength rules on login."""

    email: str = Field(default="", validate_default=True)
    password: str = Field(default="", validate_default=True)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("password_required", "Password is required", {})
        return value


class CommentCreate(BaseModel):
    """Request body for POST /api/comments.

    Only content is accepted. author / authorUsername in the body are ignored;
    the route fills them from the authenticated user.
    """

    content: str = Field(default="", validate_default=True)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("content_required", "Content is required", {})
        if len(value) > COMMENT_MAX_LENGTH:
            raise PydanticCustomError(
                "content_too_long",
                "Comment cannot exceed {max_length} characters",
                {"max_length": COMMENT_MAX_LENGTH},
            )
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuthResponse(BaseModel):
    """Safe view of a user plus a freshly issued bearer token.

    There is no password field on this model, so the hash cannot leak
    through serialization even by accident.
    """

    id: int
    username: str
    email: str
    token: str


class CommentResponse(BaseModel):
    """Wire shape of a comment. Field names are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    content: str
    author: int
    author_username: str = Field(serialization_alias="authorUsername")
    created_at: str = Field(serialization_alias="createdAt")
    updated_at: str = Field(serialization_alias="updatedAt")

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            content=comment.content,
            author=comment.author,
            author_username=comment.author_username,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class MessageResponse(BaseModel):
    """Envelope for every non-validation outcome: {"message": "..."}."""

    message: str
    error: Optional[str] = None


class FieldError(BaseModel):
    field: str
    msg: str


class ValidationErrorResponse(BaseModel):
    """Envelope for 400 validation failures: {"errors": [{"field", "msg"}, ...]}."""

    errors: list[FieldError]


class CleanupCounts(BaseModel):
    users: int
    comments: int


class CleanupResponse(BaseModel):
    message: str
    deleted: CleanupCounts


class HealthResponse(BaseModel):
    """Response model for GET /api/health."""

    status: str = "OK"
    message: str = "BlogWEB Backend is running"
    version: str
    components: dict[str, str]
