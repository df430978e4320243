"""
Tests for CommentForest and the comment tree service functions.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookworld.models import Comment, Review, User
from bookworld.services.comment_tree import (
    CommentForest,
    add_comment,
    delete_comment_subtree,
    purge_review_comments,
)

#   1          5
#   ├── 2      └── 6
#   │   └── 3
#   └── 4
PAIRS = [(1, None), (2, 1), (3, 2), (4, 1), (5, None), (6, 5)]


class TestCommentForest:
    def test_roots_and_children(self):
        forest = CommentForest(PAIRS)

        assert forest.roots == [1, 5]
        assert forest.children[1] == [2, 4]
        assert forest.parent_of[3] == 2
        assert len(forest) == 6
        assert 4 in forest
        assert 99 not in forest

    def test_subtree_lists_descendants_before_ancestors(self):
        forest = CommentForest(PAIRS)

        subtree = forest.collect_subtree(1)

        assert sorted(subtree) == [1, 2, 3, 4]
        assert subtree[-1] == 1
        assert subtree.index(3) < subtree.index(2)

    def test_subtree_of_leaf(self):
        assert CommentForest(PAIRS).collect_subtree(3) == [3]

    def test_subtree_of_missing_id_is_empty(self):
        assert CommentForest(PAIRS).collect_subtree(42) == []

    def test_collect_all_covers_every_comment(self):
        assert sorted(CommentForest(PAIRS).collect_all()) == [1, 2, 3, 4, 5, 6]

    def test_cycle_does_not_loop(self):
        """A damaged parent chain is walked once per node."""
        forest = CommentForest([(1, None), (2, 1)])
        forest.children.setdefault(2, []).append(1)

        assert sorted(forest.collect_subtree(1)) == [1, 2]

    def test_deep_chain(self):
        depth = 5000
        pairs = [(1, None)] + [(i, i - 1) for i in range(2, depth + 1)]

        subtree = CommentForest(pairs).collect_subtree(1)

        assert len(subtree) == depth
        assert subtree[0] == depth


class TestTreeServices:
    def test_reply_inherits_review(
        self, db_session: Session, sample_review: Review, second_user: User
    ):
        root = add_comment(db_session, sample_review, second_user, "root")
        reply = add_comment(db_session, sample_review, second_user, "reply", parent=root)

        assert reply.review_id == sample_review.id
        assert reply.parent_id == root.id

    def test_delete_subtree_returns_deleted_ids(
        self, db_session: Session, sample_review: Review, sample_user: User
    ):
        a = add_comment(db_session, sample_review, sample_user, "a")
        b = add_comment(db_session, sample_review, sample_user, "b", parent=a)
        c = add_comment(db_session, sample_review, sample_user, "c", parent=b)
        keep = add_comment(db_session, sample_review, sample_user, "keep")
        ids = (a.id, b.id, c.id, keep.id)

        deleted = delete_comment_subtree(db_session, ids[1])

        assert deleted == [ids[2], ids[1]]
        remaining = set(db_session.execute(select(Comment.id)).scalars().all())
        assert remaining == {ids[0], ids[3]}

    def test_delete_missing_comment_is_noop(self, db_session: Session):
        assert delete_comment_subtree(db_session, 99999) == []

    def test_purge_review_comments(
        self, db_session: Session, sample_review: Review, sample_user: User
    ):
        root = add_comment(db_session, sample_review, sample_user, "root")
        add_comment(db_session, sample_review, sample_user, "reply", parent=root)

        deleted = purge_review_comments(db_session, sample_review.id)

        assert len(deleted) == 2
        assert db_session.execute(select(Comment.id)).scalars().all() == []
