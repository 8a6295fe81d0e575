"""
role.py — ORM Models for the Role Registry

Purpose:
- A role is a named bundle of capabilities.
- Each capability row is either granted or explicitly denied.

The default bundles (administrator → subscriber) are declared in
DEFAULT_ROLES and installed by services/roles.py.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from wrdsb_rest.core.database import Base


class Role(Base):
    __tablename__ = "role"

    name = Column(String(100), primary_key=True)
    display_name = Column(String(255), nullable=False)

    capabilities = relationship(
        "RoleCapability",
        cascade="all, delete-orphan",
        back_populates="role",
    )

    def __repr__(self):
        return f"<Role {self.name}>"


class RoleCapability(Base):
    __tablename__ = "role_capability"

    id = Column(Integer, primary_key=True)
    role_name = Column(String(100), ForeignKey("role.name"), nullable=False, index=True)
    capability = Column(String(100), nullable=False)
    granted = Column(Boolean, nullable=False, default=True)

    role = relationship("Role", back_populates="capabilities")

    def __repr__(self):
        return f"<RoleCapability {self.role_name}:{self.capability}={self.granted}>"


# -----------------------------------------------------------------------------
# Default role bundles
# -----------------------------------------------------------------------------

_SUBSCRIBER = ["read", "level_0"]

_CONTRIBUTOR = _SUBSCRIBER + ["edit_posts", "delete_posts", "level_1"]

_AUTHOR = _CONTRIBUTOR + [
    "upload_files",
    "edit_published_posts",
    "publish_posts",
    "delete_published_posts",
    "level_2",
]

_EDITOR = _AUTHOR + [
    "moderate_comments",
    "manage_categories",
    "manage_links",
    "unfiltered_html",
    "edit_others_posts",
    "edit_pages",
    "edit_others_pages",
    "edit_published_pages",
    "publish_pages",
    "delete_pages",
    "delete_others_pages",
    "delete_published_pages",
    "delete_others_posts",
    "delete_private_posts",
    "edit_private_posts",
    "read_private_posts",
    "delete_private_pages",
    "edit_private_pages",
    "read_private_pages",
    "level_3",
    "level_4",
    "level_5",
    "level_6",
    "level_7",
]

_ADMINISTRATOR = _EDITOR + [
    "switch_themes",
    "edit_themes",
    "activate_plugins",
    "edit_plugins",
    "edit_users",
    "edit_files",
    "manage_options",
    "import",
    "export",
    "list_users",
    "create_users",
    "delete_users",
    "promote_users",
    "remove_users",
    "add_users",
    "level_8",
    "level_9",
    "level_10",
]

DEFAULT_ROLES = {
    "administrator": ("Administrator", _ADMINISTRATOR),
    "editor": ("Editor", _EDITOR),
    "author": ("Author", _AUTHOR),
    "contributor": ("Contributor", _CONTRIBUTOR),
    "subscriber": ("Subscriber", _SUBSCRIBER),
}
