from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.models.blog import BlogPost
from app.models.user import ROLE_ADMIN, ROLE_USER, SavedPost, User
from app.repositories.membership import is_member, toggle_membership
from app.repositories.posts import visible_criteria
from app.schemas import PostSummary


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.scalars(select(User).where(User.email == email.lower())).first()

    def get_or_create(self, email: str, name: Optional[str] = None, image: Optional[str] = None,
                      admin_emails=()) -> User:
        """Resolve a verified identity to a user row, creating it on first sign-in."""
        email = email.lower()
        user = self.get_by_email(email)
        if user:
            return user

        user = User(
            email=email,
            name=name or email.split("@")[0],
            image=image,
            role=ROLE_ADMIN if email in admin_emails else ROLE_USER,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Same user signed in twice at once; the other request created the row
            self.db.rollback()
            return self.get_by_email(email)
        self.db.refresh(user)
        return user

    def list_all(self, skip: int = 0, limit: int = 50) -> List[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        return list(self.db.scalars(stmt))

    def update_role(self, user: User, role: str) -> User:
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        return user

    def set_role(self, email: str, role: str) -> Optional[User]:
        user = self.get_by_email(email)
        if not user:
            return None
        return self.update_role(user, role)

    def delete(self, user: User) -> None:
        """
        Hard delete. Their posts, likes and saves go with them; their comments
        stay with a null author and drop out of comment threads.
        """
        self.db.delete(user)
        self.db.commit()

    # --- Saved posts ---

    def toggle_saved(self, user_id: int, post_id: int) -> bool:
        return toggle_membership(self.db, SavedPost, user_id=user_id, post_id=post_id)

    def is_saved(self, user_id: int, post_id: int) -> bool:
        return is_member(self.db, SavedPost, user_id=user_id, post_id=post_id)

    def saved_posts(self, user_id: int) -> List[PostSummary]:
        """Visible posts the user has saved, most recently saved first."""
        stmt = (
            select(BlogPost)
            .join(SavedPost, SavedPost.post_id == BlogPost.id)
            .options(joinedload(BlogPost.author), selectinload(BlogPost.tag_rows))
            .where(SavedPost.user_id == user_id, *visible_criteria())
            .order_by(SavedPost.created_at.desc(), SavedPost.id.desc())
        )
        return [PostSummary.model_validate(p) for p in self.db.scalars(stmt)]
