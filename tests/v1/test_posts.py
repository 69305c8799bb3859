# tests/v1/test_posts.py
"""Tests for post and comment endpoints."""

from fastapi import status


def test_create_post(client, auth_token, community) -> None:
    response = client.post(
        "/api/v1/posts/",
        json={"title": "Hello", "content": "First post", "community_id": community.id, "tags": ["intro"]},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["title"] == "Hello"
    assert body["approved"] is True
    assert body["net_score"] == 0


def test_anonymous_post_masks_author(client, auth_token, other_auth_token, test_user) -> None:
    created = client.post(
        "/api/v1/posts/",
        json={"title": "Secret", "content": "Masked", "anonymous": True},
        headers=auth_token,
    ).json()
    assert created["author_id"] == test_user.id

    seen_by_other = client.get(f"/api/v1/posts/{created['id']}", headers=other_auth_token).json()
    assert seen_by_other["author_id"] is None


def test_guest_post_needs_guest_header(client) -> None:
    payload = {"title": "Guest", "content": "Hi"}
    assert client.post("/api/v1/posts/", json=payload).status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = client.post("/api/v1/posts/", json=payload, headers={"X-Guest-Id": "guest_123"})
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["is_anonymous"] is True


def test_get_post_not_found(client) -> None:
    assert client.get("/api/v1/posts/4242").status_code == status.HTTP_404_NOT_FOUND


def test_delete_post_only_by_author(client, auth_token, other_auth_token, test_post) -> None:
    response = client.delete(f"/api/v1/posts/{test_post.id}", headers=other_auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete(f"/api/v1/posts/{test_post.id}", headers=auth_token)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/api/v1/posts/{test_post.id}").status_code == status.HTTP_404_NOT_FOUND


def test_comment_thread(client, auth_token, other_auth_token, test_post) -> None:
    top = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "top level"},
        headers=auth_token,
    )
    assert top.status_code == status.HTTP_201_CREATED
    reply = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "a reply", "parent_comment_id": top.json()["id"]},
        headers=other_auth_token,
    )
    assert reply.status_code == status.HTTP_201_CREATED

    tree = client.get(f"/api/v1/posts/{test_post.id}/comments").json()
    assert [node["content"] for node in tree] == ["top level"]
    assert [node["content"] for node in tree[0]["replies"]] == ["a reply"]


def test_public_comment_tree_refreshes_after_new_comment(client, auth_token, test_post) -> None:
    assert client.get(f"/api/v1/posts/{test_post.id}/comments").json() == []

    client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "fresh"},
        headers=auth_token,
    )
    tree = client.get(f"/api/v1/posts/{test_post.id}/comments").json()
    assert [node["content"] for node in tree] == ["fresh"]


def test_comment_on_locked_post(client, auth_token, mod_auth_token, test_post) -> None:
    client.post(
        f"/api/v1/moderation/posts/{test_post.id}/flags",
        json={"flag": "lock"},
        headers=mod_auth_token,
    )
    response = client.post(
        f"/api/v1/posts/{test_post.id}/comments",
        json={"content": "too late"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_delete_comment(client, auth_token, other_auth_token, test_post, make_comment) -> None:
    comment = make_comment(test_post)
    assert client.delete(f"/api/v1/comments/{comment.id}", headers=other_auth_token).status_code == 403
    assert client.delete(f"/api/v1/comments/{comment.id}", headers=auth_token).status_code == 204
    assert client.get(f"/api/v1/posts/{test_post.id}/comments").json() == []
