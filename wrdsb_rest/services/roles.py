"""
roles.py — Role Registry

Purpose:
- Answer "does this role exist" and "does this role grant capability X".
- Derive a user's effective capability map from their roles and overrides.
- Compute which roles an actor may hand out.
- Install the default role bundles.

The registry is passed explicitly to the controllers and the authorization
oracle; nothing reads a process-wide role table.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from wrdsb_rest.core.logging import get_logger
from wrdsb_rest.models import DEFAULT_ROLES, Role, RoleCapability, User

logger = get_logger(__name__)


class RoleRegistry:
    """
    Read access to the role table, with a per-instance cache.

    One instance lives for one request, so the cache never outlives a
    session.
    """

    def __init__(self, db: Session):
        self.db = db
        self._cache: Optional[Dict[str, Dict[str, bool]]] = None

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _roles(self) -> Dict[str, Dict[str, bool]]:
        if self._cache is None:
            self._cache = {}
            for role in self.db.query(Role).all():
                self._cache[role.name] = {c.capability: bool(c.granted) for c in role.capabilities}
        return self._cache

    def role_names(self) -> List[str]:
        return list(self._roles().keys())

    def role_exists(self, name: str) -> bool:
        return name in self._roles()

    def get_capabilities(self, name: str) -> Dict[str, bool]:
        return dict(self._roles().get(name, {}))

    def role_has_capability(self, name: str, capability: str) -> bool:
        return bool(self._roles().get(name, {}).get(capability, False))

    # -------------------------------------------------------------------------
    # Capability derivation
    # -------------------------------------------------------------------------

    def extra_capabilities_for(self, user: User) -> Dict[str, bool]:
        """
        The user's directly-assigned entries: each role name as `True`, then
        per-user overrides.
        """
        caps: Dict[str, bool] = {role: True for role in user.roles}
        for override in user.capability_overrides:
            caps[override.capability] = bool(override.granted)
        return caps

    def capabilities_for(self, user: User) -> Dict[str, bool]:
        """
        Effective capabilities: every capability granted or denied by the
        user's roles, with per-user overrides (and role names) applied last.
        """
        allcaps: Dict[str, bool] = {}
        for role in user.roles:
            allcaps.update(self.get_capabilities(role))
        allcaps.update(self.extra_capabilities_for(user))
        return allcaps

    def editable_roles(self, actor_capabilities: Dict[str, bool]) -> List[str]:
        """
        Roles an actor may assign: those whose granted capabilities the actor
        already holds. An actor cannot hand out more than they have.
        """
        editable = []
        for name, caps in self._roles().items():
            granted = [cap for cap, on in caps.items() if on]
            if all(actor_capabilities.get(cap, False) for cap in granted):
                editable.append(name)
        return editable

    def invalidate(self) -> None:
        self._cache = None


# -----------------------------------------------------------------------------
# Installation
# -----------------------------------------------------------------------------

def install_roles(db: Session, roles: Dict[str, tuple] = None) -> List[str]:
    """
    Create roles that are missing from the registry.

    Parameters:
        roles: {name: (display_name, [capabilities])}; defaults to DEFAULT_ROLES.

    Returns:
        Names of the roles that were created.
    """
    roles = roles if roles is not None else DEFAULT_ROLES
    created = []
    for name, (display_name, capabilities) in roles.items():
        if db.get(Role, name) is not None:
            continue
        role = Role(name=name, display_name=display_name)
        role.capabilities = [_capability_row(cap) for cap in _unique(capabilities)]
        db.add(role)
        created.append(name)
    db.flush()
    if created:
        logger.info("Installed roles: %s", ", ".join(created))
    return created


def _capability_row(capability) -> RoleCapability:
    # (name, granted) tuples deny a capability explicitly
    if isinstance(capability, tuple):
        name, granted = capability
        return RoleCapability(capability=name, granted=granted)
    return RoleCapability(capability=capability, granted=True)


def _unique(items: Iterable) -> List:
    seen = set()
    result = []
    for item in items:
        key = item[0] if isinstance(item, tuple) else item
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result
