"""
base.py — Resource Controller for Users Looked Up by an Alternate Key

Purpose:
- Resolve a user by something other than the numeric id (an ID number kept
  in user meta, an email address, ...).
- Run the read / update permission checks against the authorization oracle.
- Translate between the User record and its JSON representation using the
  field table in user_fields.py.
- Orchestrate a validated, all-or-nothing update.

Concrete controllers only say which attribute they look users up by and
which URL segment they live under:

    class UserByEmailController(AlternateKeyUsersController):
        rest_base = "user-by-email"
        def lookup_key(self): return "email"

Pipeline (update):
    permission check → sanitize → validate (email, username, slug, roles,
    meta) → prepare record → directory.update → re-fetch → roles → meta →
    additional fields → commit → render with context=edit

Nothing is written before every check has passed; anything that fails
after the first write rolls the unit of work back.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from wrdsb_rest.controllers.hooks import ControllerHooks
from wrdsb_rest.controllers.user_fields import (
    CONTEXTS,
    FieldDescriptor,
    build_item_schema,
    describe,
    field_map,
    visible_fields,
)
from wrdsb_rest.core.config import Settings, settings as default_settings
from wrdsb_rest.core.errors import ForbiddenError, NotFoundError, ValidationError
from wrdsb_rest.core.logging import get_logger
from wrdsb_rest.models import User
from wrdsb_rest.services.authorization import AuthorizationOracle
from wrdsb_rest.services.directory import UserDirectory
from wrdsb_rest.services.roles import RoleRegistry
from wrdsb_rest.utils.sanitize import is_email, is_uri

logger = get_logger(__name__)

READABLE_METHODS = ["GET"]
EDITABLE_METHODS = ["POST", "PUT", "PATCH"]

_FORMAT_CHECKS = {
    "email": is_email,
    "uri": is_uri,
}

_SCALAR_TYPES = (str, int, float, bool)


class AlternateKeyUsersController:
    """
    Read / update one user resource addressed by an alternate key.
    """

    rest_base: str = ""
    # Route segment pattern for the identifier
    identifier_pattern: str = r"[^/]+"
    default_context: str = "edit"

    def __init__(
        self,
        directory: UserDirectory,
        oracle: AuthorizationOracle,
        roles: RoleRegistry,
        settings: Settings = None,
        hooks: ControllerHooks = None,
    ):
        self.directory = directory
        self.oracle = oracle
        self.roles = roles
        self.settings = settings or default_settings
        self.hooks = hooks or ControllerHooks()
        self.namespace = self.settings.REST_NAMESPACE

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def lookup_key(self) -> str:
        """Directory attribute (or meta key) the identifier is matched against."""
        raise NotImplementedError

    def matches_pattern(self, alternate_id: str) -> bool:
        return bool(re.fullmatch(self.identifier_pattern, alternate_id or ""))

    def resolve(self, alternate_id: str) -> Optional[User]:
        """
        The user holding `alternate_id`, or None.

        Several users may share an identifier; the lowest id wins.
        """
        if not alternate_id:
            return None

        users = self.directory.find_by_attribute(self.lookup_key(), alternate_id)
        if not users:
            return None
        if len(users) > 1:
            logger.warning(
                "%s=%r matches %d users (%s); using user %s",
                self.lookup_key(),
                alternate_id,
                len(users),
                ", ".join(str(u.id) for u in users),
                users[0].id,
            )
        return users[0]

    def _resolve_or_404(self, alternate_id: str) -> User:
        user = self.resolve(alternate_id)
        if user is None:
            raise NotFoundError("rest_user_invalid_id", "Invalid resource id.")
        return user

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_item_permissions_check(self, alternate_id: str, context: str = None) -> User:
        """
        Return the resolved user if the actor may read it; raise otherwise.
        """
        context = self._check_context(context or self.default_context)
        user = self._resolve_or_404(alternate_id)

        if self.oracle.is_logged_in() and self.oracle.current_actor() == user.id:
            return user

        if context == "edit" and not self.oracle.can("list_users"):
            raise ForbiddenError(
                "rest_user_cannot_view",
                "Sorry, you cannot view this resource with edit context.",
                self.oracle.authorization_required_code(),
            )

        published = self.directory.count_user_posts(
            user.id,
            self.settings.REST_CONTENT_TYPES,
            include_private=self.oracle.can("read_private_posts"),
        )
        if (
            not published
            and not self.oracle.can("edit_user", user.id)
            and not self.oracle.can("list_users")
        ):
            raise ForbiddenError(
                "rest_user_cannot_view",
                "Sorry, you cannot view this resource.",
                self.oracle.authorization_required_code(),
            )

        return user

    def get_item(self, alternate_id: str, context: str = None) -> Dict[str, Any]:
        context = context or self.default_context
        user = self.get_item_permissions_check(alternate_id, context)
        return self.prepare_item_for_response(user, context)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_item_permissions_check(self, alternate_id: str, payload: Dict[str, Any]) -> User:
        """
        Return the resolved user if the actor may update it; raise otherwise.
        """
        user = self._resolve_or_404(alternate_id)

        if not self.oracle.can("edit_user", user.id):
            raise ForbiddenError(
                "rest_cannot_edit",
                "Sorry, you are not allowed to edit this resource.",
                self.oracle.authorization_required_code(),
            )

        if payload.get("roles") is not None and not self.oracle.can("edit_users"):
            raise ForbiddenError(
                "rest_cannot_edit_roles",
                "Sorry, you are not allowed to edit roles of this resource.",
                self.oracle.authorization_required_code(),
            )

        return user

    def update_item(self, alternate_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply `payload` to the user holding `alternate_id` and return the
        refreshed record rendered in edit context.
        """
        payload = {k: v for k, v in (payload or {}).items() if v is not None}

        user = self.update_item_permissions_check(alternate_id, payload)
        user_id = user.id

        payload = self.sanitize_payload(payload)
        self.validate_update(user, payload)

        prepared = self.prepare_item_for_database(payload)
        # Pin the write to the user that passed the permission check
        prepared["ID"] = user_id

        try:
            self.directory.update(prepared)
            user = self.directory.get_by_id(user_id)

            if "roles" in payload:
                self.directory.set_roles(user, payload["roles"])

            fields = self.get_fields()
            if "meta" in field_map(fields) and "meta" in payload:
                self.update_meta_value(user, payload["meta"])

            self.update_additional_fields(user, payload)
            self.hooks.after_update(user, payload)
            self.directory.commit()
        except Exception:
            self.directory.rollback()
            raise

        self.roles.invalidate()
        user = self.directory.refresh(user)
        logger.info("User %s updated through %s by actor %s", user_id, self.rest_base, self.oracle.current_actor())
        return self.prepare_item_for_response(user, "edit")

    def sanitize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run each field's sanitizer and format check over the request values.
        Unknown keys pass through untouched (additional fields may use them);
        read-only keys are never written, so they are not checked either.
        """
        fields = field_map(self.get_fields())
        clean = dict(payload)
        for name, value in payload.items():
            descriptor = fields.get(name)
            if descriptor is None or descriptor.readonly:
                continue
            if descriptor.format in _FORMAT_CHECKS and not _FORMAT_CHECKS[descriptor.format](value):
                raise ValidationError("rest_invalid_param", f"Invalid parameter(s): {name}")
            if descriptor.sanitize is not None and isinstance(value, str):
                clean[name] = descriptor.sanitize(value)
        return clean

    def validate_update(self, user: User, payload: Dict[str, Any]) -> None:
        """
        Field rules checked before anything is written, in order; the first
        failure wins.
        """
        email = payload.get("email")
        if email:
            owner = self.directory.email_exists(email)
            if owner is not None and owner != user.id:
                raise ValidationError("rest_user_invalid_email", "Email address is invalid.")

        username = payload.get("username")
        if username and username != user.user_login:
            raise ValidationError("rest_user_invalid_argument", "Username isn't editable.")

        slug = payload.get("slug")
        if slug and slug != user.user_nicename:
            holder = self.directory.get_by_slug(slug)
            if holder is not None and holder.id != user.id:
                raise ValidationError("rest_user_invalid_slug", "Slug is invalid.")

        if "roles" in payload:
            self.check_role_update(user.id, payload["roles"])

        if "meta" in payload:
            self.validate_meta_value(payload["meta"])

    def check_role_update(self, user_id: int, roles: List[str]) -> None:
        """
        Can the actor give user `user_id` exactly this role set?

        Every role must exist, must not strip the actor's own administrative
        access (super administrators excepted), and must be one the actor
        is allowed to hand out.
        """
        actor_id = self.oracle.current_actor()
        is_super = self.settings.MULTISITE and self.oracle.can("manage_sites")
        editing_self = actor_id == user_id

        if self.oracle.is_super_admin():
            editable = set(self.roles.role_names())
        else:
            editable = set(self.roles.editable_roles(self.oracle.actor_capabilities()))

        if not roles and editing_self and not is_super:
            raise ForbiddenError(
                "rest_user_invalid_role",
                "You cannot give resource that role.",
                self.oracle.authorization_required_code(),
            )

        for role in roles:
            if not self.roles.role_exists(role):
                raise ValidationError("rest_user_invalid_role", f"The role {role} does not exist.")

            # Admins may not demote themselves out of edit_users
            if not is_super and editing_self and not self.roles.role_has_capability(role, "edit_users"):
                raise ForbiddenError(
                    "rest_user_invalid_role",
                    "You cannot give resource that role.",
                    self.oracle.authorization_required_code(),
                )

            if role not in editable:
                raise ForbiddenError(
                    "rest_user_invalid_role",
                    "You cannot give resource that role.",
                    403,
                )

    def prepare_item_for_database(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Internal update record: only fields present in the payload that the
        schema declares writable and maps onto a record attribute.
        """
        prepared: Dict[str, Any] = {}
        for descriptor in self.get_fields():
            if descriptor.readonly or descriptor.attribute is None:
                continue
            if descriptor.name in payload:
                prepared[descriptor.attribute] = payload[descriptor.name]

        return self.hooks.pre_insert(prepared, payload)

    # -------------------------------------------------------------------------
    # Meta
    # -------------------------------------------------------------------------

    def get_meta_value(self, user: User) -> Dict[str, str]:
        values = {}
        for key in self.settings.REST_USER_META_KEYS:
            value = self.directory.get_meta(user, key)
            values[key] = value if value is not None else ""
        return values

    def validate_meta_value(self, meta: Any) -> None:
        if not isinstance(meta, dict):
            raise ValidationError("rest_invalid_param", "Invalid parameter(s): meta")
        for key in self.settings.REST_USER_META_KEYS:
            if key in meta and meta[key] is not None and not isinstance(meta[key], _SCALAR_TYPES):
                raise ValidationError(
                    "rest_invalid_stored_value",
                    f"The {key} property has an invalid stored value, and cannot be updated.",
                )

    def update_meta_value(self, user: User, meta: Dict[str, Any]) -> None:
        """Write registered meta keys; null deletes. Unregistered keys are ignored."""
        for key in self.settings.REST_USER_META_KEYS:
            if key not in meta:
                continue
            value = meta[key]
            if value is None:
                self.directory.delete_meta(user, key)
            elif isinstance(value, bool):
                self.directory.update_meta(user, key, "1" if value else "")
            else:
                self.directory.update_meta(user, key, value)

    # -------------------------------------------------------------------------
    # Additional fields
    # -------------------------------------------------------------------------

    def update_additional_fields(self, user: User, payload: Dict[str, Any]) -> None:
        for descriptor in self.hooks.additional_fields:
            if descriptor.update is None or descriptor.readonly:
                continue
            if descriptor.name in payload:
                descriptor.update(payload[descriptor.name], user, self)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def get_fields(self) -> List[FieldDescriptor]:
        return describe(self.settings, self.hooks.additional_fields)

    def prepare_item_for_response(self, user: User, context: str = None) -> Dict[str, Any]:
        """
        Render the fields visible in `context`, let the response hook add
        to them, drop anything outside the context, then attach links.
        """
        context = self._check_context(context or "embed")
        fields = self.get_fields()
        visible = visible_fields(fields, context)

        data: Dict[str, Any] = {}
        for descriptor in visible:
            if descriptor.render is None:
                continue
            data[descriptor.name] = descriptor.render(user, self)

        data = self.hooks.prepare_response(data, user)

        allowed = {d.name for d in visible}
        data = {k: v for k, v in data.items() if k in allowed}

        data["_links"] = self.prepare_links(user)
        return data

    def rest_url(self, path: str) -> str:
        base = self.settings.SITE_URL.rstrip("/") + self.settings.REST_URL_PREFIX
        return f"{base}/{path.lstrip('/')}"

    def prepare_links(self, user: User) -> Dict[str, List[Dict[str, str]]]:
        return {
            "self": [
                {"href": self.rest_url(f"{self.namespace}/{self.rest_base}/{user.id}")},
            ],
            "collection": [
                {"href": self.rest_url(f"{self.namespace}/{self.rest_base}")},
            ],
        }

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def get_item_schema(self) -> Dict[str, Any]:
        return build_item_schema(self.get_fields())

    def get_options(self) -> Dict[str, Any]:
        """Body of an OPTIONS request: namespace, methods and schema."""
        return {
            "namespace": self.namespace,
            "methods": READABLE_METHODS + EDITABLE_METHODS,
            "schema": self.get_item_schema(),
        }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_context(self, context: str) -> str:
        if context not in CONTEXTS:
            raise ValidationError("rest_invalid_param", "Invalid parameter(s): context")
        return context


__all__ = ["AlternateKeyUsersController", "EDITABLE_METHODS", "READABLE_METHODS"]
