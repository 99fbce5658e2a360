"""
api/routes/comments.py -- Public comment feed endpoints.

Routes:
  GET    /api/comments                -- list all comments, newest first (public)
  POST   /api/comments                -- create comment (requires auth)
  DELETE /api/comments/{comment_id}   -- delete own comment (requires auth + ownership)

Order of checks on DELETE:
  401 (gate) -> 404 (comment missing) -> 403 (not the author) -> delete.
  A missing comment is reported as 404 even to a user who could never have
  owned it, so 403 only ever means "exists, but not yours".

A non-integer comment_id fails path validation and is answered 400 by the
RequestValidationError handler in api/main.py.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import CommentCreate, CommentResponse, MessageResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.policy import Decision, authorize
from comments.models import Comment
from comments.store import CommentStore

logger = logging.getLogger("blogweb.api")

router = APIRouter()


@router.get("/comments", response_model=list[CommentResponse])
def list_comments(request: Request) -> list[CommentResponse]:
    """Return the whole feed, newest first. No authentication required."""
    comment_store: CommentStore = request.app.state.comment_store
    return [CommentResponse.from_comment(c) for c in comment_store.list_comments()]


@router.post("/comments", response_model=CommentResponse, status_code=201)
def create_comment(
    request: Request,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
) -> CommentResponse:
    """Post a comment as the authenticated user.

    author and author_username come from the gate's resolved user, never from
    the request body.
    """
    comment_store: CommentStore = request.app.state.comment_store
    created = comment_store.create_comment(
        Comment(
            content=body.content,
            author=current_user.id,
            author_username=current_user.username,
        )
    )
    logger.info("User id=%s created comment id=%s", current_user.id, created.id)
    return CommentResponse.from_comment(created)


@router.delete(
    "/comments/{comment_id}",
    response_model=MessageResponse,
    response_model_exclude_none=True,
    responses={403: {"model": MessageResponse}, 404: {"model": MessageResponse}},
)
def delete_comment(
    request: Request,
    comment_id: int,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    """Delete a comment. Only its author may do so."""
    comment_store: CommentStore = request.app.state.comment_store

    comment = comment_store.get_comment(comment_id)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")

    if authorize(current_user.id, comment.author) is Decision.DENY:
        logger.info("User id=%s denied delete of comment id=%s", current_user.id, comment_id)
        raise HTTPException(status_code=403, detail="Not authorized to delete this comment")

    comment_store.delete_comment(comment_id)
    return MessageResponse(message="Comment deleted")
