"""
tests/test_related.py
"""
from __future__ import annotations

from app.models.blog import STATUS_DRAFT
from app.repositories.posts import PostRepository
from app.services.related import find_related_posts


def _related(db, post, limit=3):
    repo = PostRepository(db)
    return find_related_posts(repo, repo.find_by_slug(post.slug), limit=limit)


def test_category_or_tag_overlap_excluding_drafts(db, make_post):
    a = make_post("A", category="Tech", tags=["go", "rust"], hours=1)
    make_post("B", category="Tech", tags=[], hours=3)
    make_post("C", category="Food", tags=["rust"], hours=2)
    make_post("D", category="Tech", status=STATUS_DRAFT)

    related = _related(db, a)

    assert [p.title for p in related] == ["B", "C"]


def test_never_includes_itself_and_always_shares_something(db, make_post):
    source = make_post("Source", category="Tech", tags=["python", "web"], hours=1)
    make_post("Same category", category="Tech", hours=2)
    make_post("Shared tag", category="Travel", tags=["web"], hours=3)
    make_post("Unrelated", category="Travel", tags=["beach"], hours=4)

    related = _related(db, source, limit=10)

    assert source.id not in {p.id for p in related}
    for post in related:
        assert post.category == "Tech" or set(post.tags) & {"python", "web"}
    assert {p.title for p in related} == {"Same category", "Shared tag"}


def test_limited_to_three_newest(db, make_post):
    source = make_post("Source", category="Tech", hours=1)
    for n in range(2, 7):
        make_post(f"Tech {n}", category="Tech", hours=n)

    assert [p.title for p in _related(db, source)] == ["Tech 6", "Tech 5", "Tech 4"]


def test_no_match_is_an_empty_list(db, make_post):
    lonely = make_post("Lonely", category="Poetry", tags=["haiku"])
    make_post("Other", category="Tech", tags=["go"])

    assert _related(db, lonely) == []
