from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from app.database import utc_now
from app.models.blog import BlogPost, STATUS_PUBLISHED
from app.models.like import BlogLike
from app.repositories.membership import count_members, is_member, toggle_membership
from app.schemas import CategoryCount, PostOut, PostSummary


def visible_criteria(now: Optional[datetime] = None):
    """Clauses a post must satisfy to be shown to readers."""
    now = now or utc_now()
    return (
        BlogPost.status == STATUS_PUBLISHED,
        BlogPost.published_at.isnot(None),
        BlogPost.published_at <= now,
    )


class PostRepository:
    """Storage-facing operations over blog posts. Reads return resolved DTOs."""

    def __init__(self, db: Session):
        self.db = db

    def _select(self):
        return select(BlogPost).options(
            joinedload(BlogPost.author),
            selectinload(BlogPost.tag_rows),
        )

    # --- Reads ---

    def find(self, query, skip: int, limit: int) -> List[PostSummary]:
        stmt = (
            self._select()
            .where(*query.criteria)
            .order_by(*query.order_by)
            .offset(skip)
            .limit(limit)
        )
        return [PostSummary.model_validate(p) for p in self.db.scalars(stmt)]

    def count(self, query) -> int:
        stmt = select(func.count(BlogPost.id)).where(*query.criteria)
        return self.db.scalar(stmt) or 0

    def find_by_slug(self, slug: str, now: Optional[datetime] = None) -> Optional[PostOut]:
        stmt = self._select().where(BlogPost.slug == slug, *visible_criteria(now))
        post = self.db.scalars(stmt).first()
        return PostOut.model_validate(post) if post else None

    def get(self, post_id: int) -> Optional[BlogPost]:
        return self.db.get(BlogPost, post_id)

    def get_visible(self, post_id: int, now: Optional[datetime] = None) -> Optional[BlogPost]:
        stmt = select(BlogPost).where(BlogPost.id == post_id, *visible_criteria(now))
        return self.db.scalars(stmt).first()

    def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(BlogPost.id).where(BlogPost.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(BlogPost.id != exclude_id)
        return self.db.scalars(stmt).first() is not None

    def list_all(self, skip: int = 0, limit: int = 50) -> List[PostSummary]:
        """Every post regardless of status, newest first (admin surface)."""
        stmt = (
            self._select()
            .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [PostSummary.model_validate(p) for p in self.db.scalars(stmt)]

    def top_categories(self, limit: int = 10, now: Optional[datetime] = None) -> List[CategoryCount]:
        total = func.count(BlogPost.id).label("total")
        stmt = (
            select(BlogPost.category, total)
            .where(*visible_criteria(now))
            .group_by(BlogPost.category)
            .order_by(total.desc(), BlogPost.category.asc())
            .limit(limit)
        )
        return [CategoryCount(name=name, count=count) for name, count in self.db.execute(stmt)]

    # --- Counters & likes ---

    def increment_views(self, post_id: int) -> None:
        self.db.execute(
            update(BlogPost)
            .where(BlogPost.id == post_id)
            .values(views=BlogPost.views + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def toggle_like(self, post_id: int, user_id: int) -> bool:
        return toggle_membership(self.db, BlogLike, post_id=post_id, user_id=user_id)

    def like_count(self, post_id: int) -> int:
        return count_members(self.db, BlogLike, post_id=post_id)

    def is_liked(self, post_id: int, user_id: int) -> bool:
        return is_member(self.db, BlogLike, post_id=post_id, user_id=user_id)

    # --- Writes ---

    def add(self, post: BlogPost) -> BlogPost:
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post

    def save(self, post: BlogPost) -> BlogPost:
        self.db.commit()
        self.db.refresh(post)
        return post

    def delete(self, post: BlogPost) -> None:
        self.db.delete(post)
        self.db.commit()

    def to_dto(self, post: BlogPost) -> PostOut:
        return PostOut.model_validate(post)
