from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select

from app.models.blog import BlogPost, PostTag
from app.repositories.posts import visible_criteria
from app.schemas import PostSummary
from app.services.query_builder import PostQuery, SortKey

RELATED_LIMIT = 3


def related_query(post: PostSummary, now: Optional[datetime] = None) -> PostQuery:
    """Visible posts other than ``post`` sharing its category or at least one tag."""
    shared = [BlogPost.category == post.category]
    if post.tags:
        shared.append(
            BlogPost.id.in_(select(PostTag.post_id).where(PostTag.name.in_(post.tags)))
        )

    criteria = (
        *visible_criteria(now),
        BlogPost.id != post.id,
        or_(*shared),
    )
    return PostQuery(criteria=criteria, sort=SortKey.LATEST)


def find_related_posts(repository, post: PostSummary, limit: int = RELATED_LIMIT,
                       now: Optional[datetime] = None) -> List[PostSummary]:
    if limit <= 0:
        return []
    return repository.find(related_query(post, now), skip=0, limit=limit)
