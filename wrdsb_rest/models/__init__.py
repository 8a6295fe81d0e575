"""
ORM models for the user directory.

Importing this package registers every table on `Base.metadata`.
"""

from .post import Post
from .role import DEFAULT_ROLES, Role, RoleCapability
from .user import User, UserCapability, UserMeta, UserRole

__all__ = [
    "DEFAULT_ROLES",
    "Post",
    "Role",
    "RoleCapability",
    "User",
    "UserCapability",
    "UserMeta",
    "UserRole",
]
