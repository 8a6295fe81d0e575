"""
user.py — ORM Models for Directory Users

Purpose:
- Represent user accounts managed by the directory.
- Store ordered role assignments, per-user capability overrides and
  free-form metadata (the institutional ID number lives there).

Used by:
- services/directory.py (lookup + update)
- services/roles.py (capability derivation)
- controllers/ (serialization)

Important Design Rule:
- `user_login` is set at creation and never changed through the API.
- `user_meta` may hold several rows for the same key; nothing here enforces
  uniqueness of alternate identifiers.
"""

import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Index
from sqlalchemy.orm import relationship

from wrdsb_rest.core.database import Base


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    user_login = Column(String(60), unique=True, index=True, nullable=False)
    user_pass = Column(String(255), nullable=False, default="")
    user_email = Column(String(100), unique=True, index=True, nullable=False)

    # Profile
    user_url = Column(String(100), nullable=False, default="")
    user_nicename = Column(String(50), unique=True, index=True, nullable=False)
    display_name = Column(String(250), nullable=False, default="")
    first_name = Column(String(250), nullable=False, default="")
    last_name = Column(String(250), nullable=False, default="")
    nickname = Column(String(250), nullable=False, default="")
    description = Column(Text, nullable=False, default="")

    # Stored as naive UTC
    user_registered = Column(DateTime, nullable=False, default=_utcnow)

    role_assignments = relationship(
        "UserRole",
        order_by="UserRole.position",
        cascade="all, delete-orphan",
        back_populates="user",
    )
    capability_overrides = relationship(
        "UserCapability",
        cascade="all, delete-orphan",
        back_populates="user",
    )
    meta = relationship(
        "UserMeta",
        order_by="UserMeta.umeta_id",
        cascade="all, delete-orphan",
        back_populates="user",
    )

    @property
    def roles(self):
        """Assigned role names, in assignment order."""
        return [assignment.role for assignment in self.role_assignments]

    def __repr__(self):
        return f"<User {self.id} {self.user_login}>"


class UserRole(Base):
    __tablename__ = "user_role"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    role = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="role_assignments")

    def __repr__(self):
        return f"<UserRole {self.user_id}:{self.role}>"


class UserCapability(Base):
    __tablename__ = "user_capability"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    capability = Column(String(100), nullable=False)
    granted = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="capability_overrides")

    def __repr__(self):
        return f"<UserCapability {self.user_id}:{self.capability}={self.granted}>"


class UserMeta(Base):
    __tablename__ = "user_meta"

    umeta_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    meta_key = Column(String(255), nullable=False)
    meta_value = Column(Text, nullable=True)

    user = relationship("User", back_populates="meta")

    # Alternate-identifier lookups filter on (key, value)
    __table_args__ = (
        Index("idx_user_meta_key_value", "meta_key", "meta_value"),
    )

    def __repr__(self):
        return f"<UserMeta {self.user_id} {self.meta_key}={self.meta_value!r}>"
