"""
user_fields.py — Field Schema for the User Resource

Purpose:
- Single source of truth for which user fields exist on the wire.
- Each FieldDescriptor says where a field is visible (`embed` / `view` /
  `edit`), whether a request may set it, how request values are sanitized,
  which record attribute it writes to, and how it is rendered from a User.

The table drives three things:
    • prepare_item_for_response   (render + context filtering)
    • prepare_item_for_database   (writable, non-readonly fields only)
    • get_item_schema             (JSON Schema draft-04 publication)

Special cases:
- `password` has an empty context set: writable, never rendered.
- `avatar_urls` only exists when SHOW_AVATARS is on; one sub-field per size.
- `meta` lists one sub-field per exposed user meta key.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence

from wrdsb_rest.core.config import Settings
from wrdsb_rest.models import User
from wrdsb_rest.utils.avatars import get_avatar_urls
from wrdsb_rest.utils.sanitize import (
    sanitize_slug,
    sanitize_text_field,
    sanitize_user,
    strip_unsafe_html,
)

CONTEXTS = ("embed", "view", "edit")

ALL_CONTEXTS = frozenset(CONTEXTS)
VIEW_EDIT = frozenset(("view", "edit"))
EDIT_ONLY = frozenset(("edit",))
NO_CONTEXT: FrozenSet[str] = frozenset()

JSON_SCHEMA_DRAFT_04 = "http://json-schema.org/draft-04/schema#"

# render(user, controller) -> wire value
Renderer = Callable[[User, Any], Any]


@dataclass(frozen=True)
class FieldDescriptor:
    """
    One user field as seen by REST clients.

    `attribute` is the prepared-record key the field writes to; fields
    without one (roles, meta, derived values) are never copied into the
    directory update record.
    """

    name: str
    type: str
    description: str
    context: FrozenSet[str] = ALL_CONTEXTS
    readonly: bool = False
    required: bool = False
    format: Optional[str] = None
    attribute: Optional[str] = None
    sanitize: Optional[Callable[[Any], Any]] = None
    render: Optional[Renderer] = None
    update: Optional[Callable[[Any, User, Any], None]] = None
    items: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Dict[str, Any]]] = None

    def visible_in(self, context: str) -> bool:
        return context in self.context

    def to_schema(self) -> Dict[str, Any]:
        """JSON Schema fragment for this field."""
        schema: Dict[str, Any] = {
            "description": self.description,
            "type": self.type,
        }
        if self.format:
            schema["format"] = self.format
        # Ordered like CONTEXTS so published schemas are stable
        schema["context"] = [c for c in CONTEXTS if c in self.context]
        if self.readonly:
            schema["readonly"] = True
        if self.required:
            schema["required"] = True
        if self.items:
            schema["items"] = dict(self.items)
        if self.properties is not None:
            schema["properties"] = {k: dict(v) for k, v in self.properties.items()}
        return schema


# -----------------------------------------------------------------------------
# Renderers
# -----------------------------------------------------------------------------

def _registered_date(user: User, controller) -> str:
    registered = user.user_registered
    if registered.tzinfo is None:
        registered = registered.replace(tzinfo=datetime.timezone.utc)
    return registered.isoformat(timespec="seconds")


def _author_link(user: User, controller) -> str:
    return f"{controller.settings.SITE_URL.rstrip('/')}/author/{user.user_nicename}/"


def _avatar_urls(user: User, controller) -> Dict[str, str]:
    s = controller.settings
    return get_avatar_urls(user.user_email, s.AVATAR_SIZES, s.AVATAR_DEFAULT, s.AVATAR_RATING)


# -----------------------------------------------------------------------------
# Static table
# -----------------------------------------------------------------------------

BASE_FIELDS: Sequence[FieldDescriptor] = (
    FieldDescriptor(
        name="id",
        type="integer",
        description="Unique identifier for the resource.",
        readonly=True,
        render=lambda user, c: user.id,
    ),
    FieldDescriptor(
        name="username",
        type="string",
        description="Login name for the resource.",
        context=EDIT_ONLY,
        required=True,
        attribute="user_login",
        sanitize=sanitize_user,
        render=lambda user, c: user.user_login,
    ),
    FieldDescriptor(
        name="name",
        type="string",
        description="Display name for the resource.",
        attribute="display_name",
        sanitize=sanitize_text_field,
        render=lambda user, c: user.display_name,
    ),
    FieldDescriptor(
        name="first_name",
        type="string",
        description="First name for the resource.",
        context=EDIT_ONLY,
        attribute="first_name",
        sanitize=sanitize_text_field,
        render=lambda user, c: user.first_name,
    ),
    FieldDescriptor(
        name="last_name",
        type="string",
        description="Last name for the resource.",
        context=EDIT_ONLY,
        attribute="last_name",
        sanitize=sanitize_text_field,
        render=lambda user, c: user.last_name,
    ),
    FieldDescriptor(
        name="email",
        type="string",
        description="The email address for the resource.",
        context=EDIT_ONLY,
        required=True,
        format="email",
        attribute="user_email",
        render=lambda user, c: user.user_email,
    ),
    FieldDescriptor(
        name="url",
        type="string",
        description="URL of the resource.",
        format="uri",
        attribute="user_url",
        render=lambda user, c: user.user_url,
    ),
    FieldDescriptor(
        name="description",
        type="string",
        description="Description of the resource.",
        attribute="description",
        sanitize=strip_unsafe_html,
        render=lambda user, c: user.description,
    ),
    FieldDescriptor(
        name="link",
        type="string",
        description="Author URL to the resource.",
        format="uri",
        readonly=True,
        render=_author_link,
    ),
    FieldDescriptor(
        name="nickname",
        type="string",
        description="The nickname for the resource.",
        context=EDIT_ONLY,
        attribute="nickname",
        sanitize=sanitize_text_field,
        render=lambda user, c: user.nickname,
    ),
    FieldDescriptor(
        name="slug",
        type="string",
        description="An alphanumeric identifier for the resource.",
        attribute="user_nicename",
        sanitize=sanitize_slug,
        render=lambda user, c: user.user_nicename,
    ),
    FieldDescriptor(
        name="registered_date",
        type="string",
        description="Registration date for the resource.",
        context=EDIT_ONLY,
        format="date-time",
        readonly=True,
        render=_registered_date,
    ),
    FieldDescriptor(
        name="roles",
        type="array",
        description="Roles assigned to the resource.",
        context=EDIT_ONLY,
        items={"type": "string"},
        render=lambda user, c: list(user.roles),
    ),
    FieldDescriptor(
        name="password",
        type="string",
        description="Password for the resource (never included).",
        context=NO_CONTEXT,
        required=True,
        attribute="user_pass",
    ),
    FieldDescriptor(
        name="capabilities",
        type="object",
        description="All capabilities assigned to the resource.",
        context=EDIT_ONLY,
        readonly=True,
        render=lambda user, c: dict(c.roles.capabilities_for(user)),
    ),
    FieldDescriptor(
        name="extra_capabilities",
        type="object",
        description="Any extra capabilities assigned to the resource.",
        context=EDIT_ONLY,
        readonly=True,
        render=lambda user, c: dict(c.roles.extra_capabilities_for(user)),
    ),
)


def avatar_field(sizes: Sequence[int]) -> FieldDescriptor:
    properties = {
        str(size): {
            "description": f"Avatar URL with image size of {size} pixels.",
            "type": "string",
            "format": "uri",
            "context": list(CONTEXTS),
        }
        for size in sizes
    }
    return FieldDescriptor(
        name="avatar_urls",
        type="object",
        description="Avatar URLs for the resource.",
        readonly=True,
        render=_avatar_urls,
        properties=properties,
    )


def meta_field(meta_keys: Sequence[str]) -> FieldDescriptor:
    properties = {
        key: {
            "type": "string",
            "description": "",
            "default": "",
            "context": ["view", "edit"],
        }
        for key in meta_keys
    }
    return FieldDescriptor(
        name="meta",
        type="object",
        description="Meta fields.",
        context=VIEW_EDIT,
        render=lambda user, c: c.get_meta_value(user),
        properties=properties,
    )


def describe(
    settings: Settings,
    additional: Sequence[FieldDescriptor] = (),
) -> List[FieldDescriptor]:
    """
    Ordered field table for the current settings, with any registered
    additional fields appended last.
    """
    fields = list(BASE_FIELDS)
    if settings.SHOW_AVATARS:
        fields.append(avatar_field(settings.AVATAR_SIZES))
    fields.append(meta_field(settings.REST_USER_META_KEYS))
    fields.extend(additional)
    return fields


def build_item_schema(fields: Sequence[FieldDescriptor]) -> Dict[str, Any]:
    """JSON Schema (draft-04) document for the user resource."""
    return {
        "$schema": JSON_SCHEMA_DRAFT_04,
        "title": "user",
        "type": "object",
        "properties": {f.name: f.to_schema() for f in fields},
    }


def visible_fields(fields: Sequence[FieldDescriptor], context: str) -> List[FieldDescriptor]:
    return [f for f in fields if f.visible_in(context)]


def field_map(fields: Sequence[FieldDescriptor]) -> Dict[str, FieldDescriptor]:
    return {f.name: f for f in fields}
