"""
api/routes/maintenance.py -- Test-data cleanup for end-to-end runs.

Routes:
  DELETE /api/test/cleanup -- remove accounts whose username starts with
                              TEST_USER_PREFIX, and the comments they wrote

Browser end-to-end suites register throwaway users (testuser_<n>) against a
running server. This endpoint lets the suite wipe them afterwards. It is
refused with 403 unless DEBUG=true, so a production deployment never exposes
an unauthenticated bulk delete.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from api.models import CleanupCounts, CleanupResponse
from auth.store import UserStore
from comments.store import CommentStore
from core.config import get_settings

logger = logging.getLogger("blogweb.api")

router = APIRouter()


@router.delete("/test/cleanup", response_model=CleanupResponse)
def cleanup_test_data(request: Request) -> CleanupResponse:
    settings = get_settings()
    if not settings.debug:
        raise HTTPException(status_code=403, detail="Endpoint not available in production")

    user_store: UserStore = request.app.state.user_store
    comment_store: CommentStore = request.app.state.comment_store

    prefix = settings.test_user_prefix
    deleted_users = user_store.delete_users_with_prefix(prefix)
    deleted_comments = comment_store.delete_by_author_username_prefix(prefix)
    logger.info("Cleanup removed %d users and %d comments", len(deleted_users), deleted_comments)

    return CleanupResponse(
        message="Cleanup completed",
        deleted=CleanupCounts(users=len(deleted_users), comments=deleted_comments),
    )
