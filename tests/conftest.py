"""
tests/conftest.py
"""
from __future__ import annotations

import itertools
import os
from datetime import datetime, timedelta
from typing import Generator

# Configure before anything from `app` is imported: one in-memory database
# shared by every session, and a client id so auth never hits the config error.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.database import Base, SessionLocal, engine
from app.dependencies import get_identity
from app.main import app
from app.models.blog import BlogPost, PostTag, STATUS_PUBLISHED
from app.models.comment import Comment
from app.models.user import ROLE_ADMIN, ROLE_USER, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def _fresh_schema() -> Generator[None, None, None]:
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db: Session):
    counter = itertools.count(1)

    def _make(name: str | None = None, role: str = ROLE_USER, email: str | None = None) -> User:
        n = next(counter)
        user = User(
            name=name or f"user{n}",
            email=email or f"user{n}@example.com",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def author(make_user) -> User:
    return make_user(name="Ada")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(name="Root", role=ROLE_ADMIN)


@pytest.fixture
def login():
    """
    Make every following request authenticate as ``user``
    (``None`` logs out again).
    """

    def _login(user: User | None) -> None:
        if user is None:
            app.dependency_overrides[get_identity] = lambda: None
        else:
            claims = {"email": user.email, "name": user.name}
            app.dependency_overrides[get_identity] = lambda: claims

    return _login


@pytest.fixture
def make_post(db: Session, author: User):
    """
    Insert a post directly. ``hours`` offsets published_at from BASE_TIME so
    tests control publish order without touching the clock.
    """
    counter = itertools.count(1)

    def _make(
        title: str | None = None,
        *,
        category: str = "General",
        tags: list[str] | None = None,
        status: str = STATUS_PUBLISHED,
        hours: int | None = None,
        published_at: datetime | None = None,
        views: int = 0,
        content: str = "Some body text",
        excerpt: str = "",
        author_id: int | None = None,
    ) -> BlogPost:
        n = next(counter)
        title = title or f"Post {n}"
        if published_at is None and status == STATUS_PUBLISHED:
            published_at = BASE_TIME + timedelta(hours=n if hours is None else hours)

        post = BlogPost(
            title=title,
            slug=title.lower().replace(" ", "-"),
            content=content,
            excerpt=excerpt,
            category=category,
            status=status,
            views=views,
            read_time_minutes=1,
            author_id=author_id or author.id,
            created_at=BASE_TIME,
            published_at=published_at,
        )
        post.tag_rows = [PostTag(name=t) for t in (tags or [])]
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make


@pytest.fixture
def make_comment(db: Session):
    def _make(post: BlogPost, author: User | None, content: str = "hi", parent: Comment | None = None,
              created_at: datetime | None = None) -> Comment:
        comment = Comment(
            post_id=post.id,
            author_id=author.id if author else None,
            parent_id=parent.id if parent else None,
            content=content,
            created_at=created_at or BASE_TIME,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    return _make
