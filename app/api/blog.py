import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.dependencies import get_current_user, get_optional_user, require_admin
from app.models.user import User
from app.repositories.posts import PostRepository
from app.repositories.users import UserRepository
from app.schemas import (
    CategoryCount,
    PostCreate,
    PostDetail,
    PostOut,
    PostPage,
    PostSummary,
    PostUpdate,
    SaveResult,
    ToggleResult,
)
from app.services.engagement import (
    engagement_summary,
    increment_views,
    toggle_post_like,
    toggle_saved_post,
)
from app.services.pagination import normalize_paging, paginate
from app.services.publishing import can_edit, create_post, update_post
from app.services.query_builder import build_post_query
from app.services.related import find_related_posts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["blog"])


def _storage_failure(db: Session, action: str) -> HTTPException:
    logger.exception("Database error while %s", action)
    db.rollback()
    return HTTPException(status_code=500, detail="Database error")


@router.get("/posts", response_model=PostPage)
def list_posts(
    search: Optional[str] = None,
    category: Optional[str] = None,
    author: Optional[int] = None,
    sort: Optional[str] = "latest",
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Published posts, filtered, sorted and paginated"""
    query = build_post_query(search=search, category=category, author=author, sort=sort)
    try:
        return paginate(PostRepository(db), query, page=page, limit=limit, settings=settings)
    except SQLAlchemyError:
        raise _storage_failure(db, "listing posts")


@router.get("/posts/{slug}", response_model=PostDetail)
def get_post(
    slug: str,
    background_tasks: BackgroundTasks,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    A single published post with related posts and engagement numbers.
    The view counter is bumped after the response goes out.
    """
    try:
        posts = PostRepository(db)
        post = posts.find_by_slug(slug)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")

        background_tasks.add_task(increment_views, post.id)

        # Related posts and the comment count are extras; the post still renders without them
        try:
            related = find_related_posts(posts, post, limit=settings.related_limit)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Related posts lookup failed for %s", slug)
            related = []

        return PostDetail(
            post=post,
            related=related,
            **engagement_summary(db, post.id, user),
        )
    except HTTPException:
        raise
    except SQLAlchemyError:
        raise _storage_failure(db, "loading a post")


@router.post("/posts", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def create_blog_post(
    data: PostCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a post (draft unless status is "published")"""
    try:
        return create_post(db, user, data)
    except SQLAlchemyError:
        raise _storage_failure(db, "creating a post")


@router.patch("/posts/{post_id}", response_model=PostOut)
def update_blog_post(
    post_id: int,
    data: PostUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit a post - author or admin only"""
    try:
        post = PostRepository(db).get(post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        if not can_edit(user, post):
            raise HTTPException(status_code=403, detail="Access denied")

        return update_post(db, post, data)
    except HTTPException:
        raise
    except SQLAlchemyError:
        raise _storage_failure(db, "updating a post")


@router.delete("/posts/{post_id}")
def delete_blog_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Hard delete a post with its comments, likes and saves - author or admin only"""
    try:
        posts = PostRepository(db)
        post = posts.get(post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        if not can_edit(user, post):
            raise HTTPException(status_code=403, detail="Access denied")

        posts.delete(post)
        return {"message": "Blog post deleted successfully"}
    except HTTPException:
        raise
    except SQLAlchemyError:
        raise _storage_failure(db, "deleting a post")


@router.get("/categories")
def get_categories(db: Session = Depends(get_db)):
    """Most used categories among published posts"""
    try:
        categories: List[CategoryCount] = PostRepository(db).top_categories(limit=10)
        return {"categories": categories}
    except SQLAlchemyError:
        raise _storage_failure(db, "loading categories")


# --- Like / Save Endpoints ---

@router.post("/posts/{post_id}/like", response_model=ToggleResult)
def toggle_like_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle like status for a blog post"""
    try:
        return toggle_post_like(db, post_id, user.id)
    except HTTPException:
        raise
    except SQLAlchemyError:
        raise _storage_failure(db, "toggling a like")


@router.post("/posts/{post_id}/save", response_model=SaveResult)
def toggle_save_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle the post in the user's saved posts"""
    try:
        return toggle_saved_post(db, post_id, user.id)
    except HTTPException:
        raise
    except SQLAlchemyError:
        raise _storage_failure(db, "toggling a saved post")


@router.get("/saved", response_model=List[PostSummary])
def get_saved_posts(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return UserRepository(db).saved_posts(user.id)
    except SQLAlchemyError:
        raise _storage_failure(db, "loading saved posts")


# --- Admin ---

@router.get("/admin/posts", response_model=List[PostSummary])
def admin_list_posts(
    page: int = 1,
    limit: Optional[int] = None,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Every post including drafts - admin only"""
    page, limit = normalize_paging(page, limit, settings)
    try:
        return PostRepository(db).list_all(skip=(page - 1) * limit, limit=limit)
    except SQLAlchemyError:
        raise _storage_failure(db, "listing posts for admin")
