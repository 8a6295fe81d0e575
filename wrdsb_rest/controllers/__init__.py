"""
Resource controllers for user lookups by alternate key.
"""

from .base import AlternateKeyUsersController
from .hooks import ControllerHooks
from .user_by_email import UserByEmailController
from .user_by_id_number import UserByIdNumberController

__all__ = [
    "AlternateKeyUsersController",
    "ControllerHooks",
    "UserByEmailController",
    "UserByIdNumberController",
]
