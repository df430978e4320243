"""
Comment Tree Service

Creates comments and removes whole comment subtrees.

Each review owns a forest of comments. Deletion loads the (id, parent_id)
pairs of that forest into an in-memory arena and walks it with an explicit
stack, so the depth of a thread never turns into Python call depth. The
walk yields ids with every descendant before its ancestor; the rows are
then removed in that order inside the caller's transaction.

Usage:
    forest = CommentForest.load(db, review_id)
    doomed = forest.collect_subtree(comment_id)

    deleted_ids = delete_comment_subtree(db, comment_id)
    db.commit()
"""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bookworld.models import Comment, Review, User, comment_likes

logger = logging.getLogger(__name__)


class CommentForest:
    """
    Id-keyed arena of one review's comments.

    Attributes:
        parent_of: comment id -> parent id (None for top-level comments)
        children: parent id -> ordered child ids (key None holds the roots)
    """

    def __init__(self, pairs: Iterable[tuple[int, int | None]]) -> None:
        self.parent_of: dict[int, int | None] = {}
        self.children: dict[int | None, list[int]] = {}
        for comment_id, parent_id in sorted(pairs):
            self.parent_of[comment_id] = parent_id
            self.children.setdefault(parent_id, []).append(comment_id)

    @classmethod
    def load(cls, db: Session, review_id: int) -> "CommentForest":
        db.flush()
        rows = db.execute(
            select(Comment.id, Comment.parent_id).where(Comment.review_id == review_id)
        ).all()
        return cls((row.id, row.parent_id) for row in rows)

    def __contains__(self, comment_id: int) -> bool:
        return comment_id in self.parent_of

    def __len__(self) -> int:
        return len(self.parent_of)

    @property
    def roots(self) -> list[int]:
        return list(self.children.get(None, []))

    def collect_subtree(self, root_id: int) -> list[int]:
        """
        Return root_id and all of its descendants, descendants first.

        An id that is not part of the forest is a no-op and yields [].
        Ids already seen are skipped, so a damaged parent chain cannot
        loop forever.
        """
        if root_id not in self:
            return []

        preorder: list[int] = []
        seen: set[int] = set()
        stack = [root_id]
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            preorder.append(node)
            stack.extend(self.children.get(node, []))

        # Reversed pre-order puts every child ahead of its parent
        preorder.reverse()
        return preorder

    def collect_all(self) -> list[int]:
        """Every comment in the forest, descendants before ancestors."""
        ordered: list[int] = []
        for root_id in self.roots:
            ordered.extend(self.collect_subtree(root_id))
        return ordered


def _purge(db: Session, comment_ids: list[int]) -> None:
    if not comment_ids:
        return
    db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(comment_ids)))
    db.execute(
        delete(Comment)
        .where(Comment.id.in_(comment_ids))
        .execution_options(synchronize_session="fetch")
    )


def delete_comment_subtree(db: Session, comment_id: int) -> list[int]:
    """
    Delete a comment together with every reply beneath it.

    Sibling subtrees and the rest of the review's forest are untouched.
    Likes on the removed comments go with them. The removed id drops out
    of its parent's replies (or the review's top-level list) because both
    lists are derived from parent_id.

    Does not commit; the caller commits once so the whole subtree goes
    or nothing does.

    Returns:
        The deleted ids (descendants first); [] when the comment is missing
    """
    review_id = db.execute(
        select(Comment.review_id).where(Comment.id == comment_id)
    ).scalar_one_or_none()
    if review_id is None:
        return []

    forest = CommentForest.load(db, review_id)
    doomed = forest.collect_subtree(comment_id)
    _purge(db, doomed)

    logger.info(f"Deleted comment {comment_id} and {len(doomed) - 1} replies from review {review_id}")
    return doomed


def purge_review_comments(db: Session, review_id: int) -> list[int]:
    """
    Delete the entire comment forest of a review. Does not commit.

    Returns:
        The deleted ids
    """
    forest = CommentForest.load(db, review_id)
    doomed = forest.collect_all()
    _purge(db, doomed)

    if len(forest):
        logger.info(f"Deleted {len(forest)} comments from review {review_id}")
    return doomed


def add_comment(
    db: Session,
    review: Review,
    author: User,
    content: str,
    parent: Comment | None = None,
) -> Comment:
    """
    Create a top-level comment, or a reply when parent is given.

    A reply always takes its review_id from the parent. Does not commit.
    """
    comment = Comment(
        review_id=parent.review_id if parent is not None else review.id,
        user_id=author.id,
        parent_id=parent.id if parent is not None else None,
        content=content,
    )
    db.add(comment)
    db.flush()
    return comment
