# src/forum_stage/services/change_feed.py
"""Realtime change feed and the view cache it invalidates.

Committed ORM changes are captured through SQLAlchemy session events and
published to in-process subscribers keyed by table name, optionally filtered
by a column value (e.g. only ``comment`` rows where ``post_id == 7``).
Subscribers only invalidate or re-fetch; no business logic runs here.

Usage::

    feed = ChangeFeed()
    install_change_capture(feed)
    sub = feed.subscribe("comment", on_change, column="post_id", value=7)
    ...
    feed.unsubscribe(sub)
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import Any, Final

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState, Session

from forum_stage.db.session import Base

logger = logging.getLogger(__name__)

OP_INSERT: Final = "insert"
OP_UPDATE: Final = "update"
OP_DELETE: Final = "delete"

# Session.info key holding changes flushed but not yet committed.
_PENDING_KEY: Final = "forum_stage.pending_changes"

TRACKED_TABLES: frozenset[str] = frozenset({
    "post",
    "comment",
    "vote",
    "report",
    "moderation_queue",
    "ban",
    "saved_post",
    "follow",
    "community",
})


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One committed mutation.

    ``row`` holds the column values known at flush time. Bulk UPDATE/DELETE
    statements carry no snapshot and set ``bulk``.
    """

    table: str
    op: str
    row: dict[str, Any] = field(default_factory=dict)
    bulk: bool = False

    @property
    def row_id(self) -> Any:
        return self.row.get("id")


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(eq=False, slots=True)
class Subscription:
    """Registered interest in one table, optionally narrowed to a column value."""

    table: str
    callback: ChangeCallback
    column: str | None = None
    value: Any = None

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if self.column is None or change.bulk:
            return True
        return change.row.get(self.column) == self.value


class ChangeFeed:
    """Thread-safe registry of subscriptions with synchronous dispatch."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}
        self.capture_targets: weakref.WeakSet[Any] = weakref.WeakSet()

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        """Register ``callback`` for changes on ``table``."""
        if table not in TRACKED_TABLES:
            raise ValueError(
                f"Invalid table name for subscription: '{table}'. "
                f"Allowed: {sorted(TRACKED_TABLES)}"
            )
        subscription = Subscription(table=table, callback=callback, column=column, value=value)
        with self._lock:
            self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown subscriptions are ignored."""
        with self._lock:
            registered = self._subscriptions.get(subscription.table, [])
            if subscription in registered:
                registered.remove(subscription)

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, change: ChangeEvent) -> int:
        """Deliver ``change`` to matching subscribers; returns the delivery count.

        A failing callback is logged and does not stop delivery to the others.
        """
        with self._lock:
            targets = [sub for sub in self._subscriptions.get(change.table, []) if sub.matches(change)]
        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(change)
                delivered += 1
            except Exception:
                logger.error(
                    "Change subscriber failed for %s %s", change.table, change.op, exc_info=True
                )
        return delivered


def _snapshot(instance: Any) -> dict[str, Any]:
    """Column values already loaded on ``instance``, without triggering loads."""
    state = inspect(instance)
    return {
        attr.key: state.dict.get(attr.key)
        for attr in state.mapper.column_attrs
        if attr.key in state.dict
    }


def _table_of(instance: Any) -> str | None:
    if not isinstance(instance, Base):
        return None
    name = getattr(instance, "__tablename__", None)
    return name if name in TRACKED_TABLES else None


def _flushed_changes(session: Session) -> list[ChangeEvent]:
    changes: list[ChangeEvent] = []
    for op, instances in (
        (OP_INSERT, session.new),
        (OP_UPDATE, session.dirty),
        (OP_DELETE, session.deleted),
    ):
        for instance in instances:
            table = _table_of(instance)
            if table is None:
                continue
            if op == OP_UPDATE and not session.is_modified(instance, include_collections=False):
                continue
            changes.append(ChangeEvent(table=table, op=op, row=_snapshot(instance)))
    return changes


def _bulk_change(orm_execute_state: ORMExecuteState) -> ChangeEvent | None:
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return None
    mapper = orm_execute_state.bind_mapper
    if mapper is None:
        return None
    table = mapper.local_table.name
    if table not in TRACKED_TABLES:
        return None
    op = OP_UPDATE if orm_execute_state.is_update else OP_DELETE
    return ChangeEvent(table=table, op=op, bulk=True)


def install_change_capture(feed: ChangeFeed, target: Any = Session) -> None:
    """Publish committed changes of sessions derived from ``target`` to ``feed``.

    ``target`` is anything SQLAlchemy session events accept: the Session
    class, a sessionmaker or a single session. Changes are buffered per
    session and published only after a successful commit; a rollback
    discards them. Installing the same pair twice is a no-op.
    """
    if target in feed.capture_targets:
        return
    feed.capture_targets.add(target)
    # Each feed keeps its own buffer so several feeds can watch one session.
    buffer_key = (_PENDING_KEY, id(feed))

    def _after_flush(session: Session, _flush_context: Any) -> None:
        session.info.setdefault(buffer_key, []).extend(_flushed_changes(session))

    def _do_orm_execute(orm_execute_state: ORMExecuteState) -> None:
        change = _bulk_change(orm_execute_state)
        if change is not None:
            orm_execute_state.session.info.setdefault(buffer_key, []).append(change)

    def _after_commit(session: Session) -> None:
        for change in session.info.pop(buffer_key, []):
            feed.publish(change)

    def _after_soft_rollback(session: Session, _previous_transaction: Any) -> None:
        session.info.pop(buffer_key, None)

    event.listen(target, "after_flush", _after_flush)
    event.listen(target, "do_orm_execute", _do_orm_execute)
    event.listen(target, "after_commit", _after_commit)
    event.listen(target, "after_soft_rollback", _after_soft_rollback)


class ViewCache:
    """Keyed cache of computed read projections.

    Entries are dropped by change subscriptions bound with :meth:`invalidate_on`
    and, when ``ttl_seconds`` is set, once they grow older than that.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._ttl is not None and self._clock() - stored_at > self._ttl:
                del self._entries[key]
                return None
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock())

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.put(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def invalidate_on(
        self,
        feed: ChangeFeed,
        table: str,
        keys_for: Callable[[ChangeEvent], Iterable[Hashable] | None],
    ) -> Subscription:
        """Invalidate entries whenever ``table`` changes.

        ``keys_for`` maps an event to the keys it affects; returning None
        clears the whole cache (used for bulk events).
        """

        def _on_change(change: ChangeEvent) -> None:
            keys = None if change.bulk else keys_for(change)
            if keys is None:
                self.clear()
                return
            for key in keys:
                self.invalidate(key)

        return feed.subscribe(table, _on_change)


# Process-wide feed used by the API layer.
change_feed = ChangeFeed()
