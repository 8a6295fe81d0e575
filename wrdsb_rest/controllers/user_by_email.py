"""
user_by_email.py — Users Looked Up by Email Address

Routes (mounted by api/v1/users.py):
    GET                 /{namespace}/user-by-email/{email}
    POST | PUT | PATCH  /{namespace}/user-by-email/{email}

Matching ignores case and surrounding whitespace.
"""

from wrdsb_rest.controllers.base import AlternateKeyUsersController


class UserByEmailController(AlternateKeyUsersController):
    rest_base = "user-by-email"
    identifier_pattern = r"[^/\s]+@[^/\s]+"

    def lookup_key(self) -> str:
        return "email"
