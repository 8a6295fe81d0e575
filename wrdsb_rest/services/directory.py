"""
directory.py — User Directory Service

Purpose:
- Look users up by id, login, email, slug or any metadata key.
- Apply prepared updates to a user record, enforcing the record-level rules
  (unique email, unique slug, column lengths, password hashing).
- Manage role assignment and metadata rows.
- Count authored content for read-permission decisions.

Key Interactions:
- models/user.py, models/post.py → ORM tables.
- core/security.py → password hashing.

Writes are flushed, never committed: the controller that started the update
decides when the unit of work ends (`commit()` / `rollback()`).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from wrdsb_rest.core.errors import DirectoryError
from wrdsb_rest.core.logging import get_logger
from wrdsb_rest.core.security import hash_password
from wrdsb_rest.models import Post, User, UserMeta, UserRole
from wrdsb_rest.utils.sanitize import sanitize_slug

logger = get_logger(__name__)

# Column limits enforced before writing
NICENAME_MAX_LENGTH = 50
URL_MAX_LENGTH = 100

# Lookup keys (email aside) that map onto user columns; anything else is a meta key
_ATTRIBUTE_COLUMNS = {
    "id": User.id,
    "login": User.user_login,
    "slug": User.user_nicename,
}

# Prepared-record keys copied straight onto the row
_PLAIN_COLUMNS = (
    "user_email",
    "user_url",
    "user_nicename",
    "display_name",
    "first_name",
    "last_name",
    "nickname",
    "description",
)


class UserDirectory:
    """
    SQLAlchemy-backed user store.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> Optional[User]:
        if not user_id:
            return None
        return self.db.get(User, user_id)

    def get_by_login(self, login: str) -> Optional[User]:
        return self.db.query(User).filter(User.user_login == login).first()

    def get_by_slug(self, slug: str) -> Optional[User]:
        return self.db.query(User).filter(User.user_nicename == slug).first()

    def find_by_email(self, email: str) -> List[User]:
        """
        Users whose email matches ignoring case, ordered by ascending id.
        The unique constraint is case-sensitive, so several may match.
        """
        return (
            self.db.query(User)
            .filter(func.lower(User.user_email) == (email or "").strip().lower())
            .order_by(User.id.asc())
            .all()
        )

    def get_by_email(self, email: str) -> Optional[User]:
        users = self.find_by_email(email)
        return users[0] if users else None

    def email_exists(self, email: str) -> Optional[int]:
        """Return the id of the user owning `email`, or None."""
        if not email:
            return None
        user = self.get_by_email(email)
        return user.id if user is not None else None

    def find_by_meta(self, meta_key: str, meta_value: str) -> List[User]:
        """
        All users carrying `meta_key == meta_value`, ordered by ascending id.
        """
        return (
            self.db.query(User)
            .join(UserMeta, UserMeta.user_id == User.id)
            .filter(UserMeta.meta_key == meta_key, UserMeta.meta_value == meta_value)
            .distinct()
            .order_by(User.id.asc())
            .all()
        )

    def find_by_attribute(self, key: str, value: Any) -> List[User]:
        """
        Users whose attribute `key` equals `value`.

        `key` is one of id / login / email / slug, or else a metadata key.
        """
        if value is None or value == "":
            return []

        if key == "email":
            return self.find_by_email(str(value))

        column = _ATTRIBUTE_COLUMNS.get(key)
        if column is not None:
            return self.db.query(User).filter(column == value).order_by(User.id.asc()).all()

        return self.find_by_meta(key, str(value))

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(self, prepared: Dict[str, Any]) -> User:
        """
        Apply a prepared record to the user it names.

        Parameters:
            prepared: internal field names → new values; must contain `ID`.

        Raises:
            DirectoryError: the record breaks a directory rule.
        """
        user = self.get_by_id(prepared.get("ID"))
        if user is None:
            raise DirectoryError("invalid_user_id", "Invalid user ID.")

        if "user_login" in prepared and prepared["user_login"] != user.user_login:
            raise DirectoryError("existing_user_login", "Sorry, that username cannot be changed.")

        if "user_email" in prepared:
            email = (prepared["user_email"] or "").strip()
            if not email:
                raise DirectoryError("empty_user_email", "Cannot update a user with an empty email address.")
            owner = self.email_exists(email)
            if owner is not None and owner != user.id:
                raise DirectoryError("existing_user_email", "Sorry, that email address is already used!")
            prepared["user_email"] = email

        if "user_url" in prepared:
            url = (prepared["user_url"] or "").strip()
            if len(url) > URL_MAX_LENGTH:
                raise DirectoryError("user_url_too_long", "User URL may not be longer than 100 characters.")
            prepared["user_url"] = url

        if "user_nicename" in prepared:
            nicename = prepared["user_nicename"] or sanitize_slug(user.user_login)
            if len(nicename) > NICENAME_MAX_LENGTH:
                raise DirectoryError(
                    "user_nicename_too_long", "Nicename may not be longer than 50 characters."
                )
            prepared["user_nicename"] = self._unique_nicename(nicename, user.id)

        for column in _PLAIN_COLUMNS:
            if column in prepared:
                setattr(user, column, prepared[column] if prepared[column] is not None else "")

        if prepared.get("user_pass"):
            user.user_pass = hash_password(prepared["user_pass"])

        self.db.flush()
        logger.info(
            "Updated user %s (%s)",
            user.id,
            ", ".join(sorted(k for k in prepared if k not in ("ID", "user_pass"))) or "no fields",
        )
        return user

    def _unique_nicename(self, nicename: str, user_id: int) -> str:
        """Suffix `-2`, `-3`, ... until no other user holds the slug."""
        candidate = nicename
        suffix = 2
        while True:
            holder = self.get_by_slug(candidate)
            if holder is None or holder.id == user_id:
                return candidate
            base = nicename[: NICENAME_MAX_LENGTH - len(str(suffix)) - 1]
            candidate = f"{base}-{suffix}"
            suffix += 1

    def set_roles(self, user: User, roles: Iterable[str]) -> User:
        """Replace the user's role set, keeping the given order."""
        ordered = list(dict.fromkeys(roles))
        user.role_assignments = [
            UserRole(role=role, position=position) for position, role in enumerate(ordered)
        ]
        self.db.flush()
        return user

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def get_meta(self, user: User, meta_key: str) -> Optional[str]:
        """First stored value for `meta_key`, or None."""
        for row in user.meta:
            if row.meta_key == meta_key:
                return row.meta_value
        return None

    def update_meta(self, user: User, meta_key: str, meta_value: Any) -> None:
        """Store exactly one row for `meta_key`."""
        value = "" if meta_value is None else str(meta_value)
        rows = [row for row in user.meta if row.meta_key == meta_key]
        if rows:
            rows[0].meta_value = value
            for extra in rows[1:]:
                user.meta.remove(extra)
        else:
            user.meta.append(UserMeta(meta_key=meta_key, meta_value=value))
        self.db.flush()

    def delete_meta(self, user: User, meta_key: str) -> None:
        for row in [row for row in user.meta if row.meta_key == meta_key]:
            user.meta.remove(row)
        self.db.flush()

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def count_user_posts(
        self,
        user_id: int,
        post_types: Iterable[str],
        include_private: bool = False,
    ) -> int:
        """
        Count published items of `post_types` authored by `user_id`.
        Private items are counted too when `include_private` is set.
        """
        types = list(post_types)
        if not types:
            return 0

        statuses = [Post.post_status == "publish"]
        if include_private:
            statuses.append(Post.post_status == "private")

        return (
            self.db.query(func.count(Post.id))
            .filter(
                Post.post_author == user_id,
                Post.post_type.in_(types),
                or_(*statuses),
            )
            .scalar()
        ) or 0

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    def refresh(self, user: User) -> User:
        self.db.refresh(user)
        return user

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
