"""
authorization.py — Authorization Oracle

Purpose:
- Know who the requesting actor is.
- Answer `can(capability, target)` for that actor, mapping the target-scoped
  `edit_user` onto primitive capabilities.
- Pick the right status for "authorization required" failures.

Rules:
- Anonymous actors (id 0) hold nothing.
- Super administrators (multisite only, login listed in SUPER_ADMINS) hold
  every capability.
- `edit_user` on yourself is always allowed; on anyone else it needs
  `edit_users`, and in multisite only a super administrator may edit a
  super administrator.
"""

from __future__ import annotations

from typing import Dict, Optional

from wrdsb_rest.core.config import Settings, settings as default_settings
from wrdsb_rest.core.logging import get_logger
from wrdsb_rest.core.security import ANONYMOUS_ACTOR_ID
from wrdsb_rest.models import User
from wrdsb_rest.services.directory import UserDirectory
from wrdsb_rest.services.roles import RoleRegistry

logger = get_logger(__name__)


class AuthorizationOracle:
    """
    Capability checks for a single actor.
    """

    def __init__(
        self,
        directory: UserDirectory,
        roles: RoleRegistry,
        actor_id: int = ANONYMOUS_ACTOR_ID,
        settings: Settings = None,
    ):
        self.directory = directory
        self.roles = roles
        self.settings = settings or default_settings
        self._actor_id = actor_id or ANONYMOUS_ACTOR_ID
        self._actor: Optional[User] = None
        self._actor_caps: Optional[Dict[str, bool]] = None

    # -------------------------------------------------------------------------
    # Actor
    # -------------------------------------------------------------------------

    def current_actor(self) -> int:
        """Id of the requesting actor; 0 when anonymous or unknown."""
        if self._actor_id and self.actor is None:
            return ANONYMOUS_ACTOR_ID
        return self._actor_id

    @property
    def actor(self) -> Optional[User]:
        if self._actor is None and self._actor_id:
            self._actor = self.directory.get_by_id(self._actor_id)
        return self._actor

    def is_logged_in(self) -> bool:
        return self.current_actor() != ANONYMOUS_ACTOR_ID

    def actor_capabilities(self) -> Dict[str, bool]:
        if self._actor_caps is None:
            actor = self.actor
            self._actor_caps = self.roles.capabilities_for(actor) if actor is not None else {}
        return self._actor_caps

    def is_super_admin(self, user: Optional[User] = None) -> bool:
        user = user if user is not None else self.actor
        if user is None or not self.settings.MULTISITE:
            return False
        return user.user_login in self.settings.SUPER_ADMINS

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def can(self, capability: str, target: Optional[int] = None) -> bool:
        """
        Does the current actor hold `capability`, optionally scoped to the
        user with id `target`?
        """
        if not self.is_logged_in():
            return False

        if capability == "edit_user" and target is not None:
            return self._can_edit_user(target)

        if self.is_super_admin():
            return True

        return bool(self.actor_capabilities().get(capability, False))

    def _can_edit_user(self, target: int) -> bool:
        if target == self.current_actor():
            return True
        if self.is_super_admin():
            return True
        if self.settings.MULTISITE:
            target_user = self.directory.get_by_id(target)
            if target_user is not None and self.is_super_admin(target_user):
                return False
        return bool(self.actor_capabilities().get("edit_users", False))

    def authorization_required_code(self) -> int:
        """401 for anonymous actors, 403 once logged in."""
        return 403 if self.is_logged_in() else 401
