# tests/services/test_content_service.py
"""Tests for post and comment lifecycle rules."""

import pytest
from sqlalchemy import select

from forum_stage.models import Ban, Community, ModerationQueueItem
from forum_stage.models.moderation import QUEUE_SOURCE_POLICY
from forum_stage.services.content import ContentService
from forum_stage.services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import ANONYMOUS, Viewer


def test_create_post_updates_community_count(db_session, community, user_viewer) -> None:
    post = ContentService(db_session).create_post(
        user_viewer, title="Hello", content="World", community_id=community.id, tags=["intro"]
    )

    assert post.approved is True
    assert post.tags == ["intro"]
    db_session.refresh(community)
    assert community.post_count == 1


def test_approval_community_queues_member_posts(db_session, user_viewer, mod_viewer) -> None:
    gated = Community(slug="gated", name="Gated", requires_approval=True)
    db_session.add(gated)
    db_session.commit()
    service = ContentService(db_session)

    queued = service.create_post(user_viewer, title="t", content="c", community_id=gated.id)
    assert queued.approved is False
    item = db_session.execute(
        select(ModerationQueueItem).where(ModerationQueueItem.post_id == queued.id)
    ).scalar_one()
    assert item.flagged_by == QUEUE_SOURCE_POLICY

    direct = service.create_post(mod_viewer, title="t", content="c", community_id=gated.id)
    assert direct.approved is True


def test_unknown_community_rejected(db_session, user_viewer) -> None:
    with pytest.raises(NotFoundError):
        ContentService(db_session).create_post(user_viewer, title="t", content="c", community_id=77)


def test_guest_post_requires_guest_id(db_session) -> None:
    service = ContentService(db_session)
    with pytest.raises(ValidationError):
        service.create_post(ANONYMOUS, title="t", content="c")

    post = service.create_post(Viewer(guest_id="guest_42"), title="t", content="c")
    assert post.author_id is None
    assert post.author_identifier == "guest_42"
    assert post.is_anonymous is True


def test_shadowbanned_author_content_is_flagged(db_session, other_user, moderator) -> None:
    db_session.add(Ban(user_id=other_user.id, reason="spam", banned_by=moderator.id, is_shadowban=True))
    db_session.commit()
    service = ContentService(db_session)
    author = Viewer(user_id=other_user.id)

    post = service.create_post(author, title="t", content="c")
    assert post.shadowbanned is True
    assert service.get_post(author, post.id).id == post.id
    with pytest.raises(NotFoundError):
        service.get_post(ANONYMOUS, post.id)


def test_banned_author_cannot_post(db_session, other_user, moderator) -> None:
    db_session.add(Ban(user_id=other_user.id, reason="abuse", banned_by=moderator.id, is_permanent=True))
    db_session.commit()
    with pytest.raises(AuthorizationError):
        ContentService(db_session).create_post(Viewer(user_id=other_user.id), title="t", content="c")


def test_delete_post_rules(db_session, test_post, user_viewer, other_viewer) -> None:
    service = ContentService(db_session)
    with pytest.raises(AuthorizationError):
        service.delete_post(other_viewer, test_post.id)

    service.delete_post(user_viewer, test_post.id)
    db_session.refresh(test_post)
    assert test_post.deleted is True
    with pytest.raises(NotFoundError):
        service.delete_post(user_viewer, test_post.id)


def test_comment_on_locked_post_conflicts(db_session, make_post, other_viewer) -> None:
    post = make_post(locked=True)
    with pytest.raises(ConflictError):
        ContentService(db_session).create_comment(other_viewer, post.id, content="hi")


def test_reply_must_share_post(db_session, make_post, make_comment, other_viewer) -> None:
    first = make_post(title="first")
    second = make_post(title="second")
    parent = make_comment(first)
    with pytest.raises(ValidationError):
        ContentService(db_session).create_comment(
            other_viewer, second.id, content="x", parent_comment_id=parent.id
        )


def test_comment_count_tracks_live_comments(db_session, test_post, user_viewer, other_viewer) -> None:
    service = ContentService(db_session)
    top = service.create_comment(other_viewer, test_post.id, content="top")
    service.create_comment(user_viewer, test_post.id, content="reply", parent_comment_id=top.id)
    db_session.refresh(test_post)
    assert test_post.comment_count == 2

    service.delete_comment(other_viewer, top.id)
    db_session.refresh(test_post)
    assert test_post.comment_count == 1
    with pytest.raises(AuthorizationError):
        service.delete_comment(other_viewer, top.id + 1)


def test_comment_tree_hidden_post_not_found(db_session, make_post) -> None:
    post = make_post(deleted=True)
    with pytest.raises(NotFoundError):
        ContentService(db_session).comment_tree(ANONYMOUS, post.id)
