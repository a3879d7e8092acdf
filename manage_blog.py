"""
BLOG MANAGEMENT HELPER
Quick script to inspect posts and manage users straight from the database.

Usage:
    python manage_blog.py --list [--drafts]
    python manage_blog.py --publish <slug>
    python manage_blog.py --unpublish <slug>
    python manage_blog.py --delete <slug>
    python manage_blog.py --set-role <email> <admin|user>
    python manage_blog.py --delete-user <email>
"""

import sys

from sqlalchemy import select

from app.database import Base, SessionLocal, engine
from app.models import comment, comment_like, like  # noqa: F401  register tables
from app.models.blog import BlogPost, STATUS_DRAFT, STATUS_PUBLISHED
from app.models.user import ROLES
from app.repositories.users import UserRepository
from app.schemas import PostUpdate
from app.services.publishing import update_post


def _find_post(db, slug):
    return db.scalars(select(BlogPost).where(BlogPost.slug == slug)).first()


def list_posts(drafts_only=False, session_factory=SessionLocal):
    """Print posts, newest first"""
    db = session_factory()

    try:
        stmt = select(BlogPost).order_by(BlogPost.created_at.desc())
        if drafts_only:
            stmt = stmt.where(BlogPost.status == STATUS_DRAFT)
        posts = db.scalars(stmt).all()

        if not posts:
            print("No posts found.")
            return []

        print(f"\n{'Slug':<40} {'Status':<12} {'Views':<8} {'Category':<20} {'Published':<12}")
        print("-" * 92)

        for p in posts:
            published = p.published_at.strftime("%Y-%m-%d") if p.published_at else "-"
            print(f"{p.slug[:39]:<40} {p.status:<12} {p.views:<8} {p.category[:19]:<20} {published:<12}")

        print()
        return [p.slug for p in posts]
    finally:
        db.close()


def set_status(slug, status, session_factory=SessionLocal):
    """Publish or unpublish a post; the first publish stamps published_at"""
    db = session_factory()

    try:
        post = _find_post(db, slug)
        if not post:
            print(f"Post '{slug}' not found!")
            return False

        updated = update_post(db, post, PostUpdate(status=status))
        print(f"Post '{slug}' is now {updated.status}")
        return True
    finally:
        db.close()


def delete_post(slug, session_factory=SessionLocal):
    """Hard delete a post (comments, likes and saves go with it)"""
    db = session_factory()

    try:
        post = _find_post(db, slug)
        if not post:
            print(f"Post '{slug}' not found!")
            return False

        db.delete(post)
        db.commit()

        print(f"Post '{slug}' has been deleted")
        return True
    finally:
        db.close()


def set_role(email, role, session_factory=SessionLocal):
    """Change a user's role"""
    if role not in ROLES:
        print(f"Invalid role '{role}'. Use one of: {', '.join(ROLES)}")
        return False

    db = session_factory()

    try:
        user = UserRepository(db).set_role(email, role)
        if not user:
            print(f"User '{email}' not found!")
            return False

        print(f"{user.email} is now {user.role}")
        return True
    finally:
        db.close()


def delete_user(email, session_factory=SessionLocal):
    """Hard delete a user; their posts go with them, their comments lose the author"""
    db = session_factory()

    try:
        users = UserRepository(db)
        user = users.get_by_email(email)
        if not user:
            print(f"User '{email}' not found!")
            return False

        users.delete(user)
        print(f"User '{email}' has been deleted")
        return True
    finally:
        db.close()


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    command = argv[1]

    if command == "--list":
        list_posts(drafts_only="--drafts" in argv[2:])
        return 0

    if command in ("--publish", "--unpublish", "--delete"):
        if len(argv) < 3:
            print(f"Usage: python manage_blog.py {command} <slug>")
            return 1
        if command == "--delete":
            ok = delete_post(argv[2])
        else:
            ok = set_status(argv[2], STATUS_PUBLISHED if command == "--publish" else STATUS_DRAFT)
        return 0 if ok else 1

    if command == "--set-role":
        if len(argv) < 4:
            print("Usage: python manage_blog.py --set-role <email> <admin|user>")
            return 1
        return 0 if set_role(argv[2], argv[3]) else 1

    if command == "--delete-user":
        if len(argv) < 3:
            print("Usage: python manage_blog.py --delete-user <email>")
            return 1
        return 0 if delete_user(argv[2]) else 1

    print(f"Unknown command: {command}")
    print(__doc__)
    return 1


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    sys.exit(main(sys.argv))
