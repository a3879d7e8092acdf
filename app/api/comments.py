import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, get_optional_user
from app.models.comment import COMMENT_MAX_LENGTH
from app.models.user import User
from app.repositories.comments import CommentRepository
from app.repositories.posts import PostRepository
from app.schemas import CommentCreate, CommentOut, ToggleResult
from app.services.comment_tree import build_comment_tree
from app.services.engagement import toggle_comment_like

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["comments"])


@router.get("/posts/{post_id}/comments", response_model=List[CommentOut])
def get_post_comments(
    post_id: int,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Comments for a post as threads: newest threads first, replies oldest first"""
    try:
        if not PostRepository(db).get_visible(post_id):
            raise HTTPException(status_code=404, detail="Blog post not found")

        comments = CommentRepository(db).find_by_post(post_id, viewer_id=user.id if user else None)
        return build_comment_tree(comments)
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error fetching comments for post %s", post_id)
        raise HTTPException(status_code=500, detail="Failed to fetch comments")


@router.post("/posts/{post_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    post_id: int,
    comment: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Comment on a published post, or reply to one of its comments"""
    content = (comment.content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Comment content is required")

    if len(content) > COMMENT_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Comment is too long (max {COMMENT_MAX_LENGTH} characters)",
        )

    try:
        if not PostRepository(db).get_visible(post_id):
            raise HTTPException(status_code=404, detail="Blog post not found")

        comments = CommentRepository(db)
        if comment.parent_id is not None:
            parent = comments.get(comment.parent_id)
            # A reply must stay on the same post as its parent
            if not parent or parent.post_id != post_id:
                raise HTTPException(status_code=404, detail="Parent comment not found")

        return comments.create(post_id, user.id, content, parent_id=comment.parent_id)
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error creating comment on post %s", post_id)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create comment")


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a comment and its replies - comment author or admin only"""
    try:
        comments = CommentRepository(db)
        comment = comments.get(comment_id)
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")

        if not user.is_admin and comment.author_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")

        comments.delete(comment)
        return {"message": "Comment deleted successfully"}
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error deleting comment %s", comment_id)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete comment")


# --- Comment Like Endpoints ---

@router.post("/comments/{comment_id}/like", response_model=ToggleResult)
def toggle_like_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle like status for a comment"""
    try:
        return toggle_comment_like(db, comment_id, user.id)
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error toggling like on comment %s", comment_id)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to toggle like")
