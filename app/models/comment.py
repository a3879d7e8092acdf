from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base, utc_now
from app.models.user import User  # noqa: F401  registers the "User" mapper

COMMENT_MAX_LENGTH = 5000


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL once the author's account is gone; such comments are not rendered
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    author = relationship("User")
