from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint

from app.database import Base, utc_now


class CommentLike(Base):
    __tablename__ = "comment_likes"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Ensure each user can only like a comment once
    __table_args__ = (UniqueConstraint('comment_id', 'user_id', name='uq_comment_user_like'),)
