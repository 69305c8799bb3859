# tests/services/test_moderation_service.py
"""Tests for the moderation state machines and ban handling."""

from datetime import UTC, datetime, timedelta

import pytest

from forum_stage.models import KIND_COMMENT, KIND_POST, ModerationQueueItem, Report
from forum_stage.models.moderation import (
    QUEUE_SOURCE_AUTO,
    QUEUE_STATUS_APPROVED,
    QUEUE_STATUS_PENDING,
    QUEUE_STATUS_REJECTED,
    REPORT_RESOLUTION_DELETED,
    REPORT_RESOLUTION_KEPT,
    REPORT_STATUS_PENDING,
    REPORT_STATUS_RESOLVED,
)
from forum_stage.services.bans import ensure_not_banned, is_shadowbanned
from forum_stage.services.errors import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from forum_stage.services.identity import ANONYMOUS, Viewer
from forum_stage.services.moderation import ModerationService
from forum_stage.services.ranking import STRATEGY_NEW, ranked_posts


def test_anonymous_report_records_guest(db_session, test_post) -> None:
    guest = Viewer(guest_id="guest_abc")
    report = ModerationService(db_session).report(guest, KIND_POST, test_post.id, "spam")

    assert report.status == REPORT_STATUS_PENDING
    assert report.reporter_id is None
    assert report.reporter_identifier == "guest_abc"


def test_report_validation(db_session, test_post, user_viewer) -> None:
    service = ModerationService(db_session)
    with pytest.raises(ValidationError):
        service.report(user_viewer, KIND_POST, test_post.id, "boring")
    with pytest.raises(ValidationError):
        service.report(user_viewer, "thread", test_post.id, "spam")
    with pytest.raises(NotFoundError):
        service.report(user_viewer, KIND_COMMENT, 4242, "spam")


def test_resolve_delete_is_atomic_and_second_call_conflicts(
    db_session, test_post, user_viewer, mod_viewer
) -> None:
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_POST, test_post.id, "harassment")

    resolved = service.resolve_report(mod_viewer, report.id, "delete")
    assert resolved.status == REPORT_STATUS_RESOLVED
    assert resolved.resolution == REPORT_RESOLUTION_DELETED
    assert resolved.reviewed_by == mod_viewer.user_id
    db_session.refresh(test_post)
    assert test_post.deleted is True

    with pytest.raises(ConflictError):
        service.resolve_report(mod_viewer, report.id, "keep")

    db_session.refresh(test_post)
    after = db_session.get(Report, report.id)
    assert test_post.deleted is True
    assert after.resolution == REPORT_RESOLUTION_DELETED


def test_resolve_keep_leaves_target(db_session, test_post, make_comment, user_viewer, mod_viewer) -> None:
    comment = make_comment(test_post)
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_COMMENT, comment.id, "other", "not sure")

    resolved = service.resolve_report(mod_viewer, report.id, "keep")
    assert resolved.resolution == REPORT_RESOLUTION_KEPT
    db_session.refresh(comment)
    assert comment.deleted is False


def test_resolve_delete_on_comment_updates_comment_count(
    db_session, test_post, make_comment, user_viewer, mod_viewer
) -> None:
    comment = make_comment(test_post)
    make_comment(test_post)
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_COMMENT, comment.id, "spam")

    service.resolve_report(mod_viewer, report.id, "delete")
    db_session.refresh(test_post)
    assert test_post.comment_count == 1


def test_resolve_requires_moderator(db_session, test_post, user_viewer) -> None:
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_POST, test_post.id, "spam")

    with pytest.raises(AuthenticationRequiredError):
        service.resolve_report(ANONYMOUS, report.id, "delete")
    with pytest.raises(AuthorizationError):
        service.resolve_report(user_viewer, report.id, "delete")
    assert db_session.get(Report, report.id).status == REPORT_STATUS_PENDING


def test_resolve_unknown_report(db_session, mod_viewer) -> None:
    with pytest.raises(NotFoundError):
        ModerationService(db_session).resolve_report(mod_viewer, 999, "keep")


def test_resolve_unknown_action(db_session, test_post, user_viewer, mod_viewer) -> None:
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_POST, test_post.id, "spam")
    with pytest.raises(ValidationError):
        service.resolve_report(mod_viewer, report.id, "ban")


def test_list_reports_filters_by_status(db_session, test_post, user_viewer, mod_viewer) -> None:
    service = ModerationService(db_session)
    first = service.report(user_viewer, KIND_POST, test_post.id, "spam")
    second = service.report(user_viewer, KIND_POST, test_post.id, "violence")
    service.resolve_report(mod_viewer, first.id, "keep")

    assert [r.id for r in service.list_reports(mod_viewer)] == [second.id]
    assert {r.id for r in service.list_reports(mod_viewer, status=None)} == {first.id, second.id}


def test_queue_hides_until_approved(db_session, test_post, mod_viewer) -> None:
    service = ModerationService(db_session)
    item = service.enqueue_post(test_post.id, QUEUE_SOURCE_AUTO, "link farm")
    assert item.status == QUEUE_STATUS_PENDING
    assert ranked_posts(db_session, ANONYMOUS, STRATEGY_NEW) == []

    reviewed = service.review_queue_item(mod_viewer, item.id, "approve")
    assert reviewed.status == QUEUE_STATUS_APPROVED
    assert [p.id for p in ranked_posts(db_session, ANONYMOUS, STRATEGY_NEW)] == [test_post.id]


def test_queue_reject_soft_deletes(db_session, test_post, mod_viewer) -> None:
    service = ModerationService(db_session)
    item = service.flag_post(mod_viewer, test_post.id, "off topic")

    reviewed = service.review_queue_item(mod_viewer, item.id, "reject")
    assert reviewed.status == QUEUE_STATUS_REJECTED
    db_session.refresh(test_post)
    assert test_post.deleted is True

    with pytest.raises(ConflictError):
        service.review_queue_item(mod_viewer, item.id, "approve")
    db_session.refresh(test_post)
    assert test_post.approved is False
    assert db_session.get(ModerationQueueItem, item.id).status == QUEUE_STATUS_REJECTED


def test_flag_post_twice_conflicts(db_session, test_post, mod_viewer) -> None:
    service = ModerationService(db_session)
    service.flag_post(mod_viewer, test_post.id, None)
    with pytest.raises(ConflictError):
        service.flag_post(mod_viewer, test_post.id, None)


def test_ban_defaults_to_seven_days(db_session, other_user, mod_viewer) -> None:
    ban = ModerationService(db_session).set_ban(mod_viewer, user_id=other_user.id, reason="spam")

    expires = ban.expires_at if ban.expires_at.tzinfo else ban.expires_at.replace(tzinfo=UTC)
    remaining = expires - datetime.now(UTC)
    assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)
    with pytest.raises(AuthorizationError):
        ensure_not_banned(db_session, Viewer(user_id=other_user.id))


def test_permanent_ban_has_no_expiry(db_session, other_user, mod_viewer) -> None:
    ban = ModerationService(db_session).set_ban(
        mod_viewer, user_id=other_user.id, reason="abuse", is_permanent=True
    )
    assert ban.expires_at is None


def test_ip_ban_blocks_anonymous_callers(db_session, mod_viewer) -> None:
    ModerationService(db_session).set_ban(mod_viewer, ip_address="203.0.113.9", reason="flood")
    with pytest.raises(AuthorizationError):
        ensure_not_banned(db_session, Viewer(ip_address="203.0.113.9"))
    ensure_not_banned(db_session, Viewer(ip_address="203.0.113.10"))


def test_expired_ban_is_ignored(db_session, other_user, mod_viewer) -> None:
    ModerationService(db_session).set_ban(
        mod_viewer,
        user_id=other_user.id,
        reason="spam",
        expires_at=datetime.now(UTC) - timedelta(minutes=1),
    )
    ensure_not_banned(db_session, Viewer(user_id=other_user.id))


@pytest.mark.parametrize(
    "subject",
    [{}, {"user_id": "u", "ip_address": "198.51.100.1"}],
)
def test_ban_needs_exactly_one_subject(db_session, mod_viewer, subject) -> None:
    with pytest.raises(ValidationError):
        ModerationService(db_session).set_ban(mod_viewer, reason="x", **subject)


def test_shadowban_flags_content_and_lift_restores(
    db_session, make_post, make_comment, other_user, mod_viewer
) -> None:
    post = make_post(author=other_user)
    comment = make_comment(post, author=other_user)
    service = ModerationService(db_session)

    ban = service.set_ban(mod_viewer, user_id=other_user.id, reason="spam", is_shadowban=True)
    db_session.refresh(post)
    db_session.refresh(comment)
    assert post.shadowbanned and comment.shadowbanned
    assert is_shadowbanned(db_session, other_user.id)
    # Shadowbanned users keep acting.
    ensure_not_banned(db_session, Viewer(user_id=other_user.id))

    service.lift_ban(mod_viewer, ban.id)
    db_session.refresh(post)
    db_session.refresh(comment)
    assert not post.shadowbanned and not comment.shadowbanned
    assert not is_shadowbanned(db_session, other_user.id)


def test_lift_unknown_ban(db_session, mod_viewer) -> None:
    with pytest.raises(NotFoundError):
        ModerationService(db_session).lift_ban(mod_viewer, 12345)


@pytest.mark.parametrize(("flag", "attribute"), [("pin", "pinned"), ("lock", "locked"), ("delete", "deleted")])
def test_toggle_post_flag_flips_and_sets(db_session, test_post, mod_viewer, flag, attribute) -> None:
    service = ModerationService(db_session)
    assert getattr(service.toggle_post_flag(mod_viewer, test_post.id, flag), attribute) is True
    assert getattr(service.toggle_post_flag(mod_viewer, test_post.id, flag), attribute) is False
    assert getattr(service.toggle_post_flag(mod_viewer, test_post.id, flag, True), attribute) is True
    assert getattr(service.toggle_post_flag(mod_viewer, test_post.id, flag, True), attribute) is True


def test_toggle_unknown_flag(db_session, test_post, mod_viewer, user_viewer) -> None:
    service = ModerationService(db_session)
    with pytest.raises(ValidationError):
        service.toggle_post_flag(mod_viewer, test_post.id, "feature")
    with pytest.raises(AuthorizationError):
        service.toggle_post_flag(user_viewer, test_post.id, "pin")


def test_failed_soft_delete_leaves_report_pending(
    db_session, test_post, user_viewer, mod_viewer, monkeypatch
) -> None:
    service = ModerationService(db_session)
    report = service.report(user_viewer, KIND_POST, test_post.id, "spam")

    def _fail(self, target_kind, target_id) -> None:
        raise RuntimeError("target update failed")

    monkeypatch.setattr(ModerationService, "_soft_delete", _fail)
    with pytest.raises(RuntimeError):
        service.resolve_report(mod_viewer, report.id, "delete")

    after = db_session.get(Report, report.id)
    assert after.status == REPORT_STATUS_PENDING
    assert after.resolution is None
    assert after.reviewed_by is None
    assert after.reviewed_at is None
    db_session.refresh(test_post)
    assert test_post.deleted is False


def test_failed_reject_leaves_queue_item_pending(
    db_session, test_post, mod_viewer, monkeypatch
) -> None:
    service = ModerationService(db_session)
    item = service.flag_post(mod_viewer, test_post.id, "off topic")

    def _fail(db, community_id) -> None:
        raise RuntimeError("counter update failed")

    monkeypatch.setattr("forum_stage.services.moderation.recompute_post_count", _fail)
    with pytest.raises(RuntimeError):
        service.review_queue_item(mod_viewer, item.id, "reject")

    after = db_session.get(ModerationQueueItem, item.id)
    assert after.status == QUEUE_STATUS_PENDING
    assert after.reviewed_by is None
    assert after.reviewed_at is None
    db_session.refresh(test_post)
    assert test_post.deleted is False

    monkeypatch.undo()
    assert service.review_queue_item(mod_viewer, item.id, "reject").status == QUEUE_STATUS_REJECTED
