from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint

from app.database import Base, utc_now


class BlogLike(Base):
    __tablename__ = "blog_likes"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # Ensure each user can only like a post once
    __table_args__ = (UniqueConstraint('post_id', 'user_id', name='uq_post_user_like'),)
