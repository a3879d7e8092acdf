from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint

from app.database import Base, utc_now

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    image = Column(String(500))
    role = Column(String(10), nullable=False, default=ROLE_USER)
    created_at = Column(DateTime, default=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class SavedPost(Base):
    __tablename__ = "saved_posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    # A post is saved at most once per user
    __table_args__ = (UniqueConstraint('user_id', 'post_id', name='uq_user_saved_post'),)
