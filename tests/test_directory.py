"""
Tests for the user directory and the role registry.
"""

from __future__ import annotations

import pytest

from wrdsb_rest.core.errors import DirectoryError
from wrdsb_rest.models import Role
from wrdsb_rest.services import RoleRegistry, UserDirectory, install_roles


@pytest.fixture
def directory(db):
    return UserDirectory(db)


@pytest.fixture
def registry(db):
    return RoleRegistry(db)


def stored_values(user, meta_key):
    return [row.meta_value for row in user.meta if row.meta_key == meta_key]


# ============================================================================
# Lookup
# ============================================================================

def test_find_by_attribute_columns(directory, target):
    assert directory.find_by_attribute("id", target.id) == [target]
    assert directory.find_by_attribute("login", "ustudent") == [target]
    assert directory.find_by_attribute("slug", "ustudent") == [target]
    assert directory.find_by_attribute("email", "U@X.COM") == [target]


def test_find_by_attribute_falls_back_to_meta(directory, target):
    assert directory.find_by_attribute("wrdsb_id_number", "ABC123") == [target]


@pytest.mark.parametrize("value", ["", None])
def test_find_by_attribute_empty_value(directory, target, value):
    assert directory.find_by_attribute("wrdsb_id_number", value) == []


def test_find_by_meta_orders_by_id(directory, target, user_factory):
    twin = user_factory("twin", "twin@example.com", id_number="ABC123")
    assert [u.id for u in directory.find_by_meta("wrdsb_id_number", "ABC123")] == [target.id, twin.id]


def test_find_by_email_orders_case_variants_by_id(directory, user_factory):
    first = user_factory("dup1", "Dup@example.com")
    second = user_factory("dup2", "dup@example.com")

    assert [u.id for u in directory.find_by_email("DUP@example.com")] == [first.id, second.id]
    assert directory.get_by_email("dup@example.com").id == first.id


def test_email_exists(directory, target):
    assert directory.email_exists("u@x.com") == target.id
    assert directory.email_exists("nobody@x.com") is None
    assert directory.email_exists("") is None


def test_get_by_id_zero(directory):
    assert directory.get_by_id(0) is None


# ============================================================================
# Update
# ============================================================================

def test_update_requires_existing_user(directory):
    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": 4242, "display_name": "Ghost"})
    assert exc.value.code == "invalid_user_id"


def test_update_refuses_login_change(directory, target):
    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": target.id, "user_login": "renamed"})
    assert exc.value.code == "existing_user_login"


@pytest.mark.parametrize("email", ["", "   "])
def test_update_refuses_empty_email(directory, target, email):
    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": target.id, "user_email": email})
    assert exc.value.code == "empty_user_email"


def test_update_refuses_taken_email(directory, admin, target):
    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": target.id, "user_email": "admin@example.com"})
    assert exc.value.code == "existing_user_email"


def test_update_trims_email_and_url(directory, target):
    user = directory.update({"ID": target.id, "user_email": " new@x.com ", "user_url": " http://n.example.com "})

    assert user.user_email == "new@x.com"
    assert user.user_url == "http://n.example.com"


def test_update_limits(directory, target):
    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": target.id, "user_url": "http://x.com/" + "a" * 90})
    assert exc.value.code == "user_url_too_long"

    with pytest.raises(DirectoryError) as exc:
        directory.update({"ID": target.id, "user_nicename": "n" * 51})
    assert exc.value.code == "user_nicename_too_long"


def test_update_suffixes_taken_nicename(directory, admin, target, user_factory):
    user_factory("admin2", "admin2@example.com", user_nicename="admin-2")

    user = directory.update({"ID": target.id, "user_nicename": "admin"})
    assert user.user_nicename == "admin-3"


def test_update_keeps_own_nicename(directory, target):
    assert directory.update({"ID": target.id, "user_nicename": "ustudent"}).user_nicename == "ustudent"


def test_update_hashes_password(directory, target):
    user = directory.update({"ID": target.id, "user_pass": "plain"})
    assert user.user_pass.startswith("$pbkdf2-sha256$")


def test_update_flushes_without_committing(directory, target, db):
    directory.update({"ID": target.id, "display_name": "Pending"})
    directory.rollback()

    assert directory.get_by_id(target.id).display_name == "Ustudent"


# ============================================================================
# Roles and metadata rows
# ============================================================================

def test_set_roles_replaces(directory, target):
    directory.set_roles(target, ["author", "subscriber"])
    assert target.roles == ["author", "subscriber"]

    directory.set_roles(target, ["editor"])
    assert target.roles == ["editor"]


def test_update_meta_collapses_duplicates(directory, target, db):
    from wrdsb_rest.models import UserMeta

    target.meta.append(UserMeta(meta_key="wrdsb_id_number", meta_value="OLD999"))
    db.flush()
    assert stored_values(target, "wrdsb_id_number") == ["ABC123", "OLD999"]

    directory.update_meta(target, "wrdsb_id_number", "NEW001")
    assert stored_values(target, "wrdsb_id_number") == ["NEW001"]


def test_delete_meta(directory, target):
    directory.delete_meta(target, "wrdsb_id_number")
    assert directory.get_meta(target, "wrdsb_id_number") is None


# ============================================================================
# Content counts
# ============================================================================

def test_count_user_posts(directory, target, post_factory):
    post_factory(target)
    post_factory(target, post_type="page")
    post_factory(target, status="private")
    post_factory(target, status="draft")
    post_factory(target, post_type="revision")

    assert directory.count_user_posts(target.id, ["post", "page"]) == 2
    assert directory.count_user_posts(target.id, ["post", "page"], include_private=True) == 3
    assert directory.count_user_posts(target.id, ["post"]) == 1
    assert directory.count_user_posts(target.id, []) == 0


# ============================================================================
# Role registry
# ============================================================================

def test_install_roles_is_idempotent(db):
    assert install_roles(db) == []
    assert db.query(Role).count() == 6


def test_install_custom_roles(db, registry):
    created = install_roles(db, {"auditor": ("Auditor", ["read", ("edit_posts", False)])})

    assert created == ["auditor"]
    assert registry.get_capabilities("auditor") == {"read": True, "edit_posts": False}
    assert not registry.role_has_capability("auditor", "edit_posts")


def test_registry_lookups(registry):
    assert registry.role_exists("editor")
    assert not registry.role_exists("ghost")
    assert registry.role_has_capability("administrator", "edit_users")
    assert not registry.role_has_capability("editor", "edit_users")


def test_capabilities_apply_overrides_last(db, registry, user_factory):
    user = user_factory("denied", "denied@example.com", roles=["editor"], caps={"read_private_posts": False})

    caps = registry.capabilities_for(user)
    assert caps["edit_posts"] is True
    assert caps["read_private_posts"] is False
    assert caps["editor"] is True


def test_editable_roles_bounded_by_actor_capabilities(registry):
    actor_caps = registry.get_capabilities("manager")

    editable = registry.editable_roles(actor_caps)
    assert "subscriber" in editable
    assert "manager" in editable
    assert "administrator" not in editable
    assert "editor" not in editable


def test_registry_invalidate_reloads(db, registry):
    assert not registry.role_exists("auditor")
    install_roles(db, {"auditor": ("Auditor", ["read"])})

    assert not registry.role_exists("auditor")
    registry.invalidate()
    assert registry.role_exists("auditor")
