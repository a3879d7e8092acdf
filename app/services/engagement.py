import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.user import User
from app.repositories.comments import CommentRepository
from app.repositories.posts import PostRepository
from app.repositories.users import UserRepository
from app.schemas import SaveResult, ToggleResult

logger = logging.getLogger(__name__)


def increment_views(post_id: int, session_factory=SessionLocal) -> None:
    """
    Add one view to a post. Runs as a background task after the detail
    response is sent, so it owns its session and never raises into the request.
    """
    db = session_factory()
    try:
        PostRepository(db).increment_views(post_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to increment views for post %s", post_id)
    finally:
        db.close()


def toggle_post_like(db: Session, post_id: int, user_id: int) -> ToggleResult:
    """
    Like the post if the user has not liked it, unlike it otherwise.
    A retried request flips the state again.
    """
    posts = PostRepository(db)
    if not posts.get_visible(post_id):
        raise HTTPException(status_code=404, detail="Blog post not found")

    liked = posts.toggle_like(post_id, user_id)
    return ToggleResult(liked=liked, count=posts.like_count(post_id))


def toggle_saved_post(db: Session, post_id: int, user_id: int) -> SaveResult:
    if not PostRepository(db).get_visible(post_id):
        raise HTTPException(status_code=404, detail="Blog post not found")

    saved = UserRepository(db).toggle_saved(user_id, post_id)
    return SaveResult(saved=saved)


def toggle_comment_like(db: Session, comment_id: int, user_id: int) -> ToggleResult:
    comments = CommentRepository(db)
    if not comments.get(comment_id):
        raise HTTPException(status_code=404, detail="Comment not found")

    liked = comments.toggle_like(comment_id, user_id)
    return ToggleResult(liked=liked, count=comments.like_count(comment_id))


def comments_count(db: Session, post_id: int) -> int:
    """Computed on every read; never stored on the post."""
    return CommentRepository(db).count(post_id)


def comments_count_or_zero(db: Session, post_id: int) -> int:
    try:
        return comments_count(db, post_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Comment count failed for post %s, showing 0", post_id)
        return 0


def engagement_summary(db: Session, post_id: int, user: Optional[User]) -> dict:
    """
    Numbers for the detail page: comment and like counts plus whether the
    viewer liked or saved the post. The comment count degrades to 0.
    """
    posts = PostRepository(db)
    state = {
        "comments_count": comments_count_or_zero(db, post_id),
        "like_count": posts.like_count(post_id),
        "is_liked": False,
        "is_saved": False,
    }
    if user is not None:
        state["is_liked"] = posts.is_liked(post_id, user.id)
        state["is_saved"] = UserRepository(db).is_saved(user.id, post_id)
    return state
