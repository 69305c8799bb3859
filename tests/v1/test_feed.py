# tests/v1/test_feed.py
"""Tests for ranked, following and saved feed endpoints."""

from datetime import timedelta

from fastapi import status
from sqlalchemy.exc import OperationalError


def test_feed_strategies(client, make_post) -> None:
    old_popular = make_post(title="old popular", age=timedelta(days=3), upvotes=100)
    fresh = make_post(title="fresh", age=timedelta(minutes=30), upvotes=10)

    hot = client.get("/api/v1/feed/", params={"strategy": "hot"}).json()
    assert hot["strategy"] == "hot"
    assert [item["id"] for item in hot["items"]] == [fresh.id, old_popular.id]

    top = client.get("/api/v1/feed/", params={"strategy": "top"}).json()
    assert [item["id"] for item in top["items"]] == [old_popular.id, fresh.id]


def test_pinned_post_leads_feed(client, make_post) -> None:
    pinned = make_post(title="rules", age=timedelta(days=30), pinned=True)
    make_post(title="news", upvotes=5)
    items = client.get("/api/v1/feed/").json()["items"]
    assert items[0]["id"] == pinned.id


def test_feed_by_community_and_limit(client, make_post, community) -> None:
    for n in range(3):
        make_post(title=f"in {n}", community_id=community.id, age=timedelta(hours=n))
    make_post(title="elsewhere")

    body = client.get(
        "/api/v1/feed/",
        params={"community_id": community.id, "strategy": "new", "limit": 2},
    ).json()
    assert [item["title"] for item in body["items"]] == ["in 0", "in 1"]


def test_feed_rejects_unknown_strategy_and_limits(client) -> None:
    assert client.get("/api/v1/feed/", params={"strategy": "rising"}).status_code == 422
    assert client.get("/api/v1/feed/", params={"limit": 0}).status_code == 422
    assert client.get("/api/v1/feed/", params={"limit": 1000}).status_code == 422


def test_feed_degrades_on_storage_failure(client, monkeypatch) -> None:
    def _fail(*_args, **_kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr("forum_stage.api.v1.endpoints.feed.ranked_posts", _fail)
    response = client.get("/api/v1/feed/")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["items"] == []
    assert body["degraded"] is True
    assert body["retry_after"] > 0
    assert response.headers["Retry-After"] == str(body["retry_after"])


def test_following_feed(client, auth_token, make_post, other_user) -> None:
    post = make_post(author=other_user)
    assert client.get("/api/v1/feed/following", headers=auth_token).json()["items"] == []

    followed = client.post(f"/api/v1/users/{other_user.id}/follow", headers=auth_token)
    assert followed.json() == {"status": "following"}
    items = client.get("/api/v1/feed/following", headers=auth_token).json()["items"]
    assert [item["id"] for item in items] == [post.id]

    client.delete(f"/api/v1/users/{other_user.id}/follow", headers=auth_token)
    assert client.get("/api/v1/feed/following", headers=auth_token).json()["items"] == []


def test_personal_feeds_require_sign_in(client) -> None:
    assert client.get("/api/v1/feed/following").status_code == status.HTTP_401_UNAUTHORIZED
    assert client.get("/api/v1/feed/saved").status_code == status.HTTP_401_UNAUTHORIZED


def test_saved_feed(client, auth_token, make_post) -> None:
    first = make_post(title="first")
    second = make_post(title="second")
    client.post(f"/api/v1/posts/{first.id}/save", headers=auth_token)
    client.post(f"/api/v1/posts/{second.id}/save", headers=auth_token)
    again = client.post(f"/api/v1/posts/{second.id}/save", headers=auth_token)
    assert again.json() == {"status": "already_saved"}

    items = client.get("/api/v1/feed/saved", headers=auth_token).json()["items"]
    assert [entry["post"]["id"] for entry in items] == [second.id, first.id]

    client.delete(f"/api/v1/posts/{second.id}/save", headers=auth_token)
    items = client.get("/api/v1/feed/saved", headers=auth_token).json()["items"]
    assert [entry["post"]["id"] for entry in items] == [first.id]


def test_follow_self_rejected(client, auth_token, test_user) -> None:
    response = client.post(f"/api/v1/users/{test_user.id}/follow", headers=auth_token)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_equal_scores_list_newer_post_first(client, make_post) -> None:
    older = make_post(title="older", age=timedelta(hours=5))
    newer = make_post(title="newer", age=timedelta(minutes=1))
    hot = client.get("/api/v1/feed/", params={"strategy": "hot"}).json()["items"]
    assert [item["id"] for item in hot] == [newer.id, older.id]


def test_equal_top_scores_list_newer_post_first(client, make_post) -> None:
    older = make_post(title="older", age=timedelta(hours=5), upvotes=3)
    newer = make_post(title="newer", age=timedelta(minutes=1), upvotes=3)
    top = client.get("/api/v1/feed/", params={"strategy": "top"}).json()["items"]
    assert [item["id"] for item in top] == [newer.id, older.id]
