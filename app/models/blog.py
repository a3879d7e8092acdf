from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base, utc_now
from app.models.user import User  # noqa: F401  registers the "User" mapper

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
POST_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED)
DEFAULT_CATEGORY = "General"


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=False, default="")
    featured_image = Column(String(500))
    category = Column(String(50), nullable=False, default=DEFAULT_CATEGORY, index=True)
    status = Column(String(20), nullable=False, default=STATUS_DRAFT, index=True)
    views = Column(Integer, nullable=False, default=0)
    read_time_minutes = Column(Integer, nullable=False, default=1)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    published_at = Column(DateTime, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    author = relationship("User")
    tag_rows = relationship(
        "PostTag",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostTag.name",
    )

    @property
    def tags(self) -> list[str]:
        return [t.name for t in self.tag_rows]


class PostTag(Base):
    __tablename__ = "blog_post_tags"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)

    __table_args__ = (UniqueConstraint('post_id', 'name', name='uq_post_tag'),)
