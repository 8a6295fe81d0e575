"""
Tests for role changes made through the update endpoint.
"""

from __future__ import annotations

import pytest

from wrdsb_rest.core.errors import ForbiddenError, ValidationError
from wrdsb_rest.models import User


@pytest.fixture
def multisite(test_settings):
    return test_settings.model_copy(update={"MULTISITE": True, "SUPER_ADMINS": ["admin"]})


def roles_of(db, user_id):
    db.expire_all()
    return db.get(User, user_id).roles


# ============================================================================
# Assigning roles to another user
# ============================================================================

def test_roles_are_replaced_in_order(make_controller, admin, target):
    body = make_controller(admin).update_item("ABC123", {"roles": ["editor", "subscriber"]})
    assert body["roles"] == ["editor", "subscriber"]


def test_duplicate_roles_collapse(make_controller, admin, target):
    assert make_controller(admin).update_item("ABC123", {"roles": ["author", "author"]})["roles"] == ["author"]


def test_capabilities_follow_new_roles(make_controller, admin, target):
    body = make_controller(admin).update_item("ABC123", {"roles": ["editor"]})

    assert body["capabilities"]["read_private_posts"] is True
    assert body["extra_capabilities"] == {"editor": True}


def test_admin_may_clear_roles_of_another_user(make_controller, admin, target):
    assert make_controller(admin).update_item("ABC123", {"roles": []})["roles"] == []


def test_unknown_role_rejected_without_changes(make_controller, admin, target, db):
    with pytest.raises(ValidationError) as exc:
        make_controller(admin).update_item("ABC123", {"roles": ["editor", "ghost"], "name": "X"})

    assert exc.value.code == "rest_user_invalid_role"
    assert exc.value.status == 400
    assert exc.value.message == "The role ghost does not exist."
    assert roles_of(db, target.id) == ["subscriber"]


def test_email_conflict_reported_before_roles(make_controller, admin, target):
    with pytest.raises(ValidationError) as exc:
        make_controller(admin).update_item("ABC123", {"email": "admin@example.com", "roles": ["ghost"]})
    assert exc.value.code == "rest_user_invalid_email"


def test_actor_without_edit_users_cannot_touch_roles(make_controller, target):
    """A subscriber may edit their own profile but not their roles."""
    with pytest.raises(ForbiddenError) as exc:
        make_controller(target).update_item("ABC123", {"roles": ["administrator"]})

    assert exc.value.code == "rest_cannot_edit_roles"
    assert exc.value.status == 403


def test_manager_cannot_hand_out_administrator(make_controller, manager, target, db):
    with pytest.raises(ForbiddenError) as exc:
        make_controller(manager).update_item("ABC123", {"roles": ["administrator"]})

    assert exc.value.code == "rest_user_invalid_role"
    assert exc.value.status == 403
    assert roles_of(db, target.id) == ["subscriber"]


@pytest.mark.parametrize("roles", [["subscriber"], ["manager"], ["subscriber", "manager"]])
def test_manager_hands_out_roles_within_own_capabilities(make_controller, manager, target, roles):
    assert make_controller(manager).update_item("ABC123", {"roles": roles})["roles"] == roles


# ============================================================================
# Changing one's own roles
# ============================================================================

def test_admin_cannot_demote_self(make_controller, admin, db):
    with pytest.raises(ForbiddenError) as exc:
        make_controller(admin).update_item("ADM001", {"roles": ["editor"]})

    assert exc.value.code == "rest_user_invalid_role"
    assert exc.value.status == 403
    assert roles_of(db, admin.id) == ["administrator"]


def test_admin_may_keep_an_edit_users_role(make_controller, admin):
    body = make_controller(admin).update_item("ADM001", {"roles": ["manager"]})
    assert body["roles"] == ["manager"]


def test_admin_cannot_clear_own_roles(make_controller, admin, db):
    with pytest.raises(ForbiddenError) as exc:
        make_controller(admin).update_item("ADM001", {"roles": []})

    assert exc.value.code == "rest_user_invalid_role"
    assert roles_of(db, admin.id) == ["administrator"]


def test_super_admin_may_demote_self(make_controller, admin, multisite):
    body = make_controller(admin, settings=multisite).update_item("ADM001", {"roles": ["subscriber"]})
    assert body["roles"] == ["subscriber"]


def test_super_admin_may_clear_own_roles(make_controller, admin, multisite):
    assert make_controller(admin, settings=multisite).update_item("ADM001", {"roles": []})["roles"] == []


def test_super_admin_assigns_any_role(make_controller, admin, target, multisite):
    controller = make_controller(admin, settings=multisite)
    body = controller.update_item("ABC123", {"roles": ["administrator"]})
    assert body["roles"] == ["administrator"]


def test_only_super_admin_edits_super_admin(make_controller, admin, manager, multisite):
    with pytest.raises(ForbiddenError) as exc:
        make_controller(manager, settings=multisite).update_item("ADM001", {"name": "X"})
    assert exc.value.code == "rest_cannot_edit"
