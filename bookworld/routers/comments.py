"""
Comments Router

Threaded discussion under a review.

Endpoints (all under /books/{book_id}/reviews/{review_id}/comments):
- GET    ""                   - Top-level comments of the review
- POST   ""                   - Post a top-level comment
- GET    "/{comment_id}"      - Direct replies to a comment
- POST   "/{comment_id}"      - Reply to a comment
- DELETE "/{comment_id}"      - Delete a comment and every reply beneath it
- POST   "/{comment_id}/like" - Toggle a like on a comment

Reading is public; writing requires a bearer token. Deleting is allowed
for the comment's author or an admin.
"""

import logging

from fastapi import APIRouter, Request, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from bookworld.config import get_settings
from bookworld.dependencies import (
    CurrentUser,
    DbSession,
    ensure_owner_or_admin,
    get_comment_or_404,
    get_review_or_404,
)
from bookworld.models import Comment
from bookworld.schemas import CommentCreate, CommentResponse, LikeToggleResponse
from bookworld.services.comment_tree import add_comment, delete_comment_subtree
from bookworld.services.rate_limiter import limiter
from bookworld.services.reactions import toggle_comment_like

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books/{book_id}/reviews/{review_id}/comments",
    tags=["Comments"],
    responses={
        404: {"description": "Book, review or comment not found"},
    },
)


def _load_comments(db, *conditions) -> list[Comment]:
    stmt = (
        select(Comment)
        .options(
            selectinload(Comment.user),
            selectinload(Comment.liked_by),
            selectinload(Comment.replies),
        )
        .where(*conditions)
        .order_by(Comment.id)
    )
    return list(db.execute(stmt).scalars().all())


@router.get(
    "",
    response_model=list[CommentResponse],
    summary="List top-level comments",
)
@limiter.limit(settings.rate_limit_default)
def list_comments(
    request: Request,
    book_id: int,
    review_id: int,
    db: DbSession,
) -> list[CommentResponse]:
    review = get_review_or_404(db, book_id, review_id)
    comments = _load_comments(db, Comment.review_id == review.id, Comment.parent_id.is_(None))
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a review",
)
@limiter.limit(settings.rate_limit_write)
def create_comment(
    request: Request,
    book_id: int,
    review_id: int,
    comment_in: CommentCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> CommentResponse:
    """
    Post a top-level comment on a review.

    Raises:
        NotFoundError: 404 if the book or review does not exist
    """
    review = get_review_or_404(db, book_id, review_id)
    comment = add_comment(db, review, current_user, comment_in.content)
    db.commit()

    logger.info(f"Comment {comment.id} posted on review {review_id} by user {current_user.id}")
    return CommentResponse.model_validate(get_comment_or_404(db, review, comment.id))


@router.get(
    "/{comment_id}",
    response_model=list[CommentResponse],
    summary="List replies to a comment",
)
@limiter.limit(settings.rate_limit_default)
def list_replies(
    request: Request,
    book_id: int,
    review_id: int,
    comment_id: int,
    db: DbSession,
) -> list[CommentResponse]:
    review = get_review_or_404(db, book_id, review_id)
    parent = get_comment_or_404(db, review, comment_id)
    replies = _load_comments(db, Comment.parent_id == parent.id)
    return [CommentResponse.model_validate(c) for c in replies]


@router.post(
    "/{comment_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a comment",
)
@limiter.limit(settings.rate_limit_write)
def create_reply(
    request: Request,
    book_id: int,
    review_id: int,
    comment_id: int,
    comment_in: CommentCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> CommentResponse:
    """
    Reply to an existing comment.

    The reply belongs to the same review as its parent.

    Raises:
        NotFoundError: 404 if the book, review or parent comment does not exist
    """
    review = get_review_or_404(db, book_id, review_id)
    parent = get_comment_or_404(db, review, comment_id)
    reply = add_comment(db, review, current_user, comment_in.content, parent=parent)
    db.commit()

    logger.info(f"Reply {reply.id} posted under comment {comment_id} by user {current_user.id}")
    return CommentResponse.model_validate(get_comment_or_404(db, review, reply.id))


@router.delete(
    "/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a comment thread",
    description="Deletes the comment and all replies beneath it. Author or admin only.",
)
@limiter.limit(settings.rate_limit_write)
def delete_comment(
    request: Request,
    book_id: int,
    review_id: int,
    comment_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> None:
    """
    Delete a comment and its whole subtree in one transaction.

    Raises:
        NotFoundError: 404 if the book, review or comment does not exist
        AuthorizationError: 403 if the caller is neither author nor admin
    """
    review = get_review_or_404(db, book_id, review_id)
    comment = get_comment_or_404(db, review, comment_id)
    ensure_owner_or_admin(
        current_user,
        comment.user_id,
        "You can only delete your own comments",
    )

    deleted_ids = delete_comment_subtree(db, comment.id)
    db.commit()

    logger.info(f"User {current_user.id} deleted comments {deleted_ids} from review {review_id}")


@router.post(
    "/{comment_id}/like",
    response_model=LikeToggleResponse,
    summary="Like or unlike a comment",
)
@limiter.limit(settings.rate_limit_write)
def like_comment(
    request: Request,
    book_id: int,
    review_id: int,
    comment_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> LikeToggleResponse:
    """Toggle the caller's like on a comment."""
    review = get_review_or_404(db, book_id, review_id)
    comment = get_comment_or_404(db, review, comment_id)
    liked = toggle_comment_like(db, comment, current_user)

    return LikeToggleResponse(
        message="Comment liked successfully" if liked else "Comment unliked successfully",
        liked=liked,
        likes_count=comment.likes_count,
    )
