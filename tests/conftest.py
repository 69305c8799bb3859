# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timedelta
from itertools import count
from typing import Any

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from forum_stage.api.v1.endpoints.comments import comment_tree_cache  # noqa: E402
from forum_stage.core.security import create_access_token  # noqa: E402
from forum_stage.db.session import Base  # noqa: E402
from forum_stage.db.session import get_db as app_get_session  # noqa: E402
from forum_stage.db.time import utcnow  # noqa: E402
from forum_stage.main import app as fastapi_app  # noqa: E402
from forum_stage.models import Comment, Community, Post, User, UserRole  # noqa: E402
from forum_stage.models.user import ROLE_GLOBAL_MOD  # noqa: E402
from forum_stage.services.identity import Viewer  # noqa: E402

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Services commit for real; every test starts from empty tables instead.
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_comment_tree_cache() -> Iterator[None]:
    comment_tree_cache.clear()
    yield
    comment_tree_cache.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _create_user(db_session: Session, name: str, roles: tuple[str, ...] = ()) -> User:
    number = next(_USER_COUNTER)
    user = User(id=f"{name}-{number}", username=f"{name}{number}")
    user.roles = [UserRole(role=role) for role in roles]
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted member."""
    return _create_user(db_session, "alice")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted member."""
    return _create_user(db_session, "bob")


@pytest.fixture()
def moderator(db_session: Session) -> User:
    """Create and return a user holding a moderator role."""
    return _create_user(db_session, "mod", (ROLE_GLOBAL_MOD,))


@pytest.fixture()
def user_viewer(test_user: User) -> Viewer:
    return Viewer(user_id=test_user.id)


@pytest.fixture()
def other_viewer(other_user: User) -> Viewer:
    return Viewer(user_id=other_user.id)


@pytest.fixture()
def mod_viewer(moderator: User) -> Viewer:
    return Viewer(user_id=moderator.id, is_moderator=True)


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return _headers(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return _headers(other_user)


@pytest.fixture()
def mod_auth_token(moderator: User) -> dict[str, str]:
    """Return authorization headers for the moderator."""
    return _headers(moderator)


@pytest.fixture()
def community(db_session: Session) -> Community:
    """Create a default test community."""
    community = Community(
        slug="test",
        name="Test Community",
        description="Test community description",
        rules=[{"title": "Be kind", "description": "No harassment"}],
    )
    db_session.add(community)
    db_session.commit()
    return community


@pytest.fixture()
def make_post(db_session: Session, test_user: User) -> Callable[..., Post]:
    """Factory persisting posts with controllable age and counters."""

    def _make_post(
        *,
        author: User | None = None,
        title: str = "Test post",
        age: timedelta = timedelta(0),
        now: datetime | None = None,
        **fields: Any,
    ) -> Post:
        post = Post(
            author_id=(author or test_user).id,
            title=title,
            content=f"{title} body",
            created_at=(now or utcnow()) - age,
            **fields,
        )
        db_session.add(post)
        db_session.commit()
        return post

    return _make_post


@pytest.fixture()
def test_post(make_post: Callable[..., Post], community: Community) -> Post:
    """Create a baseline post for tests."""
    return make_post(community_id=community.id)


@pytest.fixture()
def make_comment(db_session: Session, test_user: User) -> Callable[..., Comment]:
    """Factory persisting comments under a post."""

    def _make_comment(
        post: Post,
        *,
        parent: Comment | None = None,
        author: User | None = None,
        content: str = "A comment",
        age: timedelta = timedelta(0),
        **fields: Any,
    ) -> Comment:
        comment = Comment(
            post_id=post.id,
            parent_comment_id=parent.id if parent else None,
            author_id=(author or test_user).id,
            content=content,
            created_at=utcnow() - age,
            **fields,
        )
        db_session.add(comment)
        db_session.commit()
        return comment

    return _make_comment
