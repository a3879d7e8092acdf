import html
import math
import re
import unicodedata
from typing import Iterable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.database import utc_now
from app.models.blog import BlogPost, PostTag, DEFAULT_CATEGORY, STATUS_PUBLISHED
from app.models.user import User
from app.repositories.posts import PostRepository
from app.schemas import PostCreate, PostOut, PostUpdate

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 160

_TAGS = re.compile(r"<[^>]+>")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    s = _NON_SLUG.sub("-", text.strip().lower()).strip("-")
    return s or "post"


def unique_slug(posts: PostRepository, title: str, exclude_id: Optional[int] = None) -> str:
    """Slug of the title, suffixed -2, -3, ... until no other post uses it."""
    base = slugify(title)[:240]
    slug = base
    n = 2
    while posts.slug_exists(slug, exclude_id=exclude_id):
        slug = f"{base}-{n}"
        n += 1
    return slug


def plain_text(content: str) -> str:
    return " ".join(html.unescape(_TAGS.sub(" ", content or "")).split())


def estimate_read_time(content: str) -> int:
    """Minutes to read the body at 200 words per minute, at least 1."""
    words = len(plain_text(content).split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def derive_excerpt(content: str) -> str:
    text = plain_text(content)
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH].rsplit(" ", 1)[0] + "..."


def can_edit(user: User, post: BlogPost) -> bool:
    return user.is_admin or post.author_id == user.id


def _set_tags(post: BlogPost, tags: Iterable[str]) -> None:
    # Keep rows that survive so the (post_id, name) constraint never sees a re-insert
    wanted = list(tags)
    post.tag_rows = [row for row in post.tag_rows if row.name in wanted]
    existing = {row.name for row in post.tag_rows}
    post.tag_rows.extend(PostTag(name=name) for name in wanted if name not in existing)


def _apply_status(post: BlogPost, status: str) -> None:
    post.status = status
    # published_at is assigned on the first publish only
    if status == STATUS_PUBLISHED and post.published_at is None:
        post.published_at = utc_now()


def create_post(db: Session, author: User, data: PostCreate) -> PostOut:
    posts = PostRepository(db)

    post = BlogPost(
        title=data.title,
        slug=unique_slug(posts, data.title),
        content=data.content,
        excerpt=(data.excerpt or "").strip() or derive_excerpt(data.content),
        featured_image=data.featured_image or None,
        category=(data.category or "").strip() or DEFAULT_CATEGORY,
        read_time_minutes=estimate_read_time(data.content),
        author_id=author.id,
        views=0,
    )
    _set_tags(post, data.tags)
    _apply_status(post, data.status)

    return posts.to_dto(posts.add(post))


def update_post(db: Session, post: BlogPost, data: PostUpdate) -> PostOut:
    posts = PostRepository(db)
    fields = data.model_dump(exclude_unset=True)

    if fields.get("title") is not None:
        title = fields["title"].strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title must not be blank")
        if title != post.title:
            post.title = title
            # Published URLs stay stable; only never-published posts follow the title
            if post.published_at is None:
                post.slug = unique_slug(posts, title, exclude_id=post.id)

    if fields.get("content") is not None:
        if not fields["content"].strip():
            raise HTTPException(status_code=400, detail="Content must not be blank")
        post.content = fields["content"]
        post.read_time_minutes = estimate_read_time(post.content)

    if "excerpt" in fields:
        post.excerpt = (fields["excerpt"] or "").strip() or derive_excerpt(post.content)

    if "featured_image" in fields:
        post.featured_image = fields["featured_image"] or None

    if fields.get("category") is not None:
        post.category = fields["category"].strip() or DEFAULT_CATEGORY

    if fields.get("tags") is not None:
        _set_tags(post, fields["tags"])

    if fields.get("status") is not None:
        _apply_status(post, fields["status"])

    return posts.to_dto(posts.save(post))
