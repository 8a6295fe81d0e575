"""
Directory, role registry and authorization services used by the controllers.
"""

from .authorization import AuthorizationOracle
from .directory import UserDirectory
from .roles import RoleRegistry, install_roles

__all__ = ["AuthorizationOracle", "RoleRegistry", "UserDirectory", "install_roles"]
