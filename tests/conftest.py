"""
Shared fixtures: an in-memory directory with the default roles installed,
a few users, and factories for controllers acting as a given user.
"""

from __future__ import annotations

import datetime
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wrdsb_rest.controllers import ControllerHooks, UserByIdNumberController
from wrdsb_rest.core.config import Settings
from wrdsb_rest.core.database import Base
from wrdsb_rest.models import Post, Role, RoleCapability, User, UserCapability, UserMeta, UserRole
from wrdsb_rest.services import AuthorizationOracle, RoleRegistry, UserDirectory, install_roles


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        SITE_URL="http://example.test",
        REST_URL_PREFIX="/wp-json",
        REST_NAMESPACE="wrdsb/v2",
        ID_NUMBER_META_KEY="wrdsb_id_number",
        REST_USER_META_KEYS=["wrdsb_id_number"],
        SHOW_AVATARS=True,
        AVATAR_SIZES=[24, 48, 96],
        MULTISITE=False,
        SUPER_ADMINS=[],
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    install_roles(session)
    # A role that may manage users but holds few content capabilities
    manager = Role(name="manager", display_name="Manager")
    manager.capabilities = [
        RoleCapability(capability=cap)
        for cap in ("read", "level_0", "edit_users", "list_users")
    ]
    session.add(manager)
    session.commit()
    yield session
    session.close()


def make_user(
    db,
    login: str,
    email: str,
    roles: List[str] = ("subscriber",),
    id_number: Optional[str] = None,
    caps: Optional[Dict[str, bool]] = None,
    **fields,
) -> User:
    user = User(
        user_login=login,
        user_email=email,
        user_nicename=fields.pop("user_nicename", login),
        display_name=fields.pop("display_name", login.title()),
        **fields,
    )
    user.role_assignments = [UserRole(role=r, position=i) for i, r in enumerate(roles)]
    user.capability_overrides = [
        UserCapability(capability=cap, granted=granted) for cap, granted in (caps or {}).items()
    ]
    if id_number is not None:
        user.meta = [UserMeta(meta_key="wrdsb_id_number", meta_value=id_number)]
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin(db):
    return make_user(db, "admin", "admin@example.com", roles=["administrator"], id_number="ADM001")


@pytest.fixture
def target(db):
    """User U from the worked examples: a subscriber holding ID number ABC123."""
    return make_user(
        db,
        "ustudent",
        "u@x.com",
        roles=["subscriber"],
        id_number="ABC123",
        first_name="Una",
        last_name="Student",
        nickname="una",
        description="Grade 11",
        user_url="http://u.example.com",
        user_registered=datetime.datetime(2020, 1, 2, 3, 4, 5),
    )


@pytest.fixture
def lister(db):
    """A subscriber granted `list_users` directly."""
    return make_user(db, "lister", "lister@example.com", roles=["subscriber"], caps={"list_users": True})


@pytest.fixture
def outsider(db):
    return make_user(db, "outsider", "outsider@example.com", roles=["subscriber"])


@pytest.fixture
def manager(db):
    return make_user(db, "manager", "manager@example.com", roles=["manager"])


def add_post(db, author: User, post_type: str = "post", status: str = "publish") -> Post:
    post = Post(post_author=author.id, post_type=post_type, post_status=status, post_title="Hello")
    db.add(post)
    db.commit()
    return post


@pytest.fixture
def make_controller(db, test_settings):
    """
    make_controller(actor, cls=UserByIdNumberController, settings=None, hooks=None)
    builds a controller acting as `actor` (a User or None for anonymous).
    """

    def _make(actor=None, cls=UserByIdNumberController, settings=None, hooks: ControllerHooks = None):
        settings = settings or test_settings
        directory = UserDirectory(db)
        roles = RoleRegistry(db)
        actor_id = actor.id if actor is not None else 0
        oracle = AuthorizationOracle(directory, roles, actor_id, settings)
        return cls(directory, oracle, roles, settings, hooks=hooks)

    return _make


@pytest.fixture
def user_factory(db):
    def _make(login, email, **kwargs):
        return make_user(db, login, email, **kwargs)

    return _make


@pytest.fixture
def post_factory(db):
    def _make(author, post_type="post", status="publish"):
        return add_post(db, author, post_type, status)

    return _make
