"""
tests/test_posts_api.py
"""
from __future__ import annotations

from sqlalchemy.exc import OperationalError

import app.api.blog as blog_api
import app.main as app_main
import app.services.engagement as engagement
from app.models.blog import BlogPost, STATUS_DRAFT
from app.repositories.comments import CommentRepository
from app.repositories.posts import PostRepository


# ────────────────────────── listing ──────────────────────────
def test_listing_shape_and_pagination(client, make_post):
    for n in range(1, 6):
        make_post(f"P{n}", hours=n)

    rv = client.get("/api/blog/posts", params={"page": 2, "limit": 2})

    assert rv.status_code == 200
    body = rv.json()
    assert [p["title"] for p in body["items"]] == ["P3", "P2"]
    assert body["page"] == 2
    assert body["total"] == 5
    assert body["total_pages"] == 3
    assert "content" not in body["items"][0]
    assert body["items"][0]["author"]["name"] == "Ada"


def test_listing_filters_and_popular_sort(client, make_post):
    make_post("Rust one", category="Tech", views=3)
    make_post("Rust two", category="Tech", views=9)
    make_post("Soup", category="Food", views=100)

    rv = client.get("/api/blog/posts", params={"search": "rust", "category": "Tech", "sort": "popular"})

    assert [p["title"] for p in rv.json()["items"]] == ["Rust two", "Rust one"]


def test_malformed_query_is_400(client):
    assert client.get("/api/blog/posts", params={"page": "two"}).status_code == 400
    assert client.get("/api/blog/posts", params={"author": "ada"}).status_code == 400


def test_out_of_range_page_is_empty(client, make_post):
    make_post()
    body = client.get("/api/blog/posts", params={"page": 50}).json()
    assert body["items"] == [] and body["total_pages"] == 1

    huge = client.get("/api/blog/posts", params={"page": 10**19})
    assert huge.status_code == 200
    assert huge.json()["items"] == []


# ────────────────────────── detail ──────────────────────────
def test_detail_counts_a_view_after_responding(client, db, make_post):
    post = make_post("Hello", views=10)

    first = client.get("/api/blog/posts/hello").json()
    second = client.get("/api/blog/posts/hello").json()

    assert first["post"]["views"] == 10
    assert second["post"]["views"] == 11
    db.expire_all()
    assert db.get(BlogPost, post.id).views == 12


def test_detail_payload(client, make_post, make_comment, make_user, login, author):
    post = make_post("Main", category="Tech", tags=["go"], content="<p>Full body</p>")
    make_post("Sibling", category="Tech")
    make_comment(post, author)
    reader = make_user()
    login(reader)
    client.post(f"/api/blog/posts/{post.id}/like")

    body = client.get("/api/blog/posts/main").json()

    assert body["post"]["content"] == "<p>Full body</p>"
    assert body["post"]["tags"] == ["go"]
    assert [p["title"] for p in body["related"]] == ["Sibling"]
    assert body["comments_count"] == 1
    assert body["like_count"] == 1
    assert body["is_liked"] is True
    assert body["is_saved"] is False


def test_unknown_or_draft_slug_is_404(client, make_post):
    make_post("Secret", status=STATUS_DRAFT)
    assert client.get("/api/blog/posts/secret").status_code == 404
    assert client.get("/api/blog/posts/nope").status_code == 404


def test_related_failure_does_not_break_the_page(client, make_post, monkeypatch):
    make_post("Main", category="Tech")
    make_post("Sibling", category="Tech")

    def boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(blog_api, "find_related_posts", boom)

    rv = client.get("/api/blog/posts/main")

    assert rv.status_code == 200
    assert rv.json()["related"] == []
    assert rv.json()["post"]["title"] == "Main"


def test_comment_count_failure_degrades_to_zero(client, make_post, make_comment, author, monkeypatch):
    post = make_post("Main")
    make_comment(post, author)

    def boom(db, post_id):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(engagement, "comments_count", boom)

    rv = client.get("/api/blog/posts/main")

    assert rv.status_code == 200
    assert rv.json()["comments_count"] == 0


# ────────────────────────── likes & saves ──────────────────────────
def test_like_requires_identity(client, make_post):
    post = make_post()
    assert client.post(f"/api/blog/posts/{post.id}/like").status_code == 401


def test_like_toggle_over_http(client, make_post, make_user, login):
    post = make_post()
    login(make_user())

    assert client.post(f"/api/blog/posts/{post.id}/like").json() == {"liked": True, "count": 1}
    assert client.post(f"/api/blog/posts/{post.id}/like").json() == {"liked": False, "count": 0}
    assert client.post("/api/blog/posts/999/like").status_code == 404
    assert client.post("/api/blog/posts/abc/like").status_code == 400


def test_saved_posts(client, make_post, make_user, login):
    kept = make_post("Kept")
    make_post("Skipped")
    login(make_user())

    assert client.post(f"/api/blog/posts/{kept.id}/save").json() == {"saved": True}
    assert [p["title"] for p in client.get("/api/blog/saved").json()] == ["Kept"]

    assert client.post(f"/api/blog/posts/{kept.id}/save").json() == {"saved": False}
    assert client.get("/api/blog/saved").json() == []


# ────────────────────────── authoring ──────────────────────────
def test_create_draft_then_publish_once(client, make_user, login):
    writer = make_user()
    login(writer)

    rv = client.post("/api/blog/posts", json={
        "title": "Hello, World!",
        "content": "<p>" + "word " * 450 + "</p>",
        "tags": "python, web, python",
        "category": "Tech",
    })
    assert rv.status_code == 201
    post = rv.json()
    assert post["slug"] == "hello-world"
    assert post["status"] == "draft"
    assert post["published_at"] is None
    assert post["read_time_minutes"] == 3
    assert post["tags"] == ["python", "web"]
    assert post["excerpt"].startswith("word word")
    assert post["author_id"] == writer.id

    # Invisible to readers while a draft
    assert client.get("/api/blog/posts/hello-world").status_code == 404

    published = client.patch(f"/api/blog/posts/{post['id']}", json={"status": "published"}).json()
    assert published["published_at"] is not None

    client.patch(f"/api/blog/posts/{post['id']}", json={"status": "draft"})
    again = client.patch(f"/api/blog/posts/{post['id']}", json={"status": "published"}).json()
    assert again["published_at"] == published["published_at"]

    assert client.get("/api/blog/posts/hello-world").status_code == 200


def test_slugs_stay_unique(client, make_user, login):
    login(make_user())

    slugs = [
        client.post("/api/blog/posts", json={"title": "Same Title", "content": "x"}).json()["slug"]
        for _ in range(3)
    ]

    assert slugs == ["same-title", "same-title-2", "same-title-3"]


def test_update_replaces_tags_and_recomputes_read_time(client, make_user, login):
    login(make_user())
    post = client.post("/api/blog/posts", json={"title": "T", "content": "short", "tags": ["a", "b"]}).json()

    updated = client.patch(f"/api/blog/posts/{post['id']}", json={
        "tags": ["b", "c"],
        "content": "word " * 401,
    }).json()

    assert updated["tags"] == ["b", "c"]
    assert updated["read_time_minutes"] == 3


def test_create_validation(client, make_user, login):
    assert client.post("/api/blog/posts", json={"title": "x", "content": "y"}).status_code == 401

    login(make_user())
    assert client.post("/api/blog/posts", json={"title": "  ", "content": "y"}).status_code == 400
    assert client.post("/api/blog/posts", json={"title": "x", "content": "y", "status": "live"}).status_code == 400


def test_only_author_or_admin_may_edit_or_delete(client, make_post, make_user, admin, login):
    post = make_post("Mine")
    login(make_user())

    assert client.patch(f"/api/blog/posts/{post.id}", json={"title": "Hijacked"}).status_code == 403
    assert client.delete(f"/api/blog/posts/{post.id}").status_code == 403

    login(admin)
    assert client.patch(f"/api/blog/posts/{post.id}", json={"title": "Edited"}).json()["title"] == "Edited"
    assert client.delete(f"/api/blog/posts/{post.id}").status_code == 200
    assert client.get("/api/blog/posts/mine").status_code == 404
    assert client.delete(f"/api/blog/posts/{post.id}").status_code == 404


def test_delete_cascades_to_comments_and_likes(client, db, make_post, make_comment, author, login):
    post = make_post("Doomed")
    make_comment(post, author)
    login(author)
    client.post(f"/api/blog/posts/{post.id}/like")

    assert client.delete(f"/api/blog/posts/{post.id}").status_code == 200

    assert CommentRepository(db).count(post.id) == 0
    assert PostRepository(db).like_count(post.id) == 0


# ────────────────────────── categories & admin ──────────────────────────
def test_categories_ranked_by_published_count(client, make_post):
    make_post("a", category="Tech")
    make_post("b", category="Tech")
    make_post("c", category="Food")
    make_post("d", category="Food", status=STATUS_DRAFT)
    make_post("e", category="Art")

    assert client.get("/api/blog/categories").json() == {"categories": [
        {"name": "Tech", "count": 2},
        {"name": "Art", "count": 1},
        {"name": "Food", "count": 1},
    ]}


def test_admin_listing_includes_drafts(client, make_post, make_user, admin, login):
    make_post("Public")
    make_post("Draft", status=STATUS_DRAFT)

    login(make_user())
    assert client.get("/api/blog/admin/posts").status_code == 403

    login(admin)
    titles = {p["title"] for p in client.get("/api/blog/admin/posts").json()}
    assert titles == {"Public", "Draft"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_run_serves_the_app_with_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(app_main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    app_main.run()

    assert calls == [("app.main:app", {"host": app_main.settings.host, "port": app_main.settings.port})]
