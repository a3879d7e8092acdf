from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from app.models.comment import Comment
from app.models.comment_like import CommentLike
from app.repositories.membership import count_members, toggle_membership
from app.schemas import AuthorOut, CommentOut


class CommentRepository:
    """Storage-facing operations over comments; authors are joined in, not looked up later."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_dto(comment: Comment, like_count: int = 0, is_liked: bool = False) -> CommentOut:
        return CommentOut(
            id=comment.id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            content=comment.content,
            created_at=comment.created_at,
            author=AuthorOut.model_validate(comment.author) if comment.author else None,
            like_count=like_count,
            is_liked=is_liked,
        )

    def find_by_post(self, post_id: int, viewer_id: Optional[int] = None) -> List[CommentOut]:
        """Flat list of the post's comments with author, like count and viewer like state."""
        like_counts = (
            select(CommentLike.comment_id, func.count(CommentLike.id).label("total"))
            .group_by(CommentLike.comment_id)
            .subquery()
        )
        stmt = (
            select(Comment, func.coalesce(like_counts.c.total, 0))
            .outerjoin(like_counts, like_counts.c.comment_id == Comment.id)
            .options(joinedload(Comment.author))
            .where(Comment.post_id == post_id)
        )
        rows = self.db.execute(stmt).all()

        liked_ids = set()
        if viewer_id is not None:
            liked_ids = set(
                self.db.scalars(
                    select(CommentLike.comment_id)
                    .join(Comment, Comment.id == CommentLike.comment_id)
                    .where(Comment.post_id == post_id, CommentLike.user_id == viewer_id)
                )
            )

        return [self._to_dto(c, total, c.id in liked_ids) for c, total in rows]

    def get(self, comment_id: int) -> Optional[Comment]:
        return self.db.get(Comment, comment_id)

    def create(self, post_id: int, author_id: int, content: str, parent_id: Optional[int] = None) -> CommentOut:
        comment = Comment(
            post_id=post_id,
            author_id=author_id,
            content=content,
            parent_id=parent_id,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return self._to_dto(comment)

    def count(self, post_id: int) -> int:
        return self.db.scalar(
            select(func.count(Comment.id)).where(Comment.post_id == post_id)
        ) or 0

    def toggle_like(self, comment_id: int, user_id: int) -> bool:
        return toggle_membership(self.db, CommentLike, comment_id=comment_id, user_id=user_id)

    def like_count(self, comment_id: int) -> int:
        return count_members(self.db, CommentLike, comment_id=comment_id)

    def delete(self, comment: Comment) -> None:
        self.db.delete(comment)
        self.db.commit()
