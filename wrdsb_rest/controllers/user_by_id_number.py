"""
user_by_id_number.py — Users Looked Up by Institutional ID Number

Routes (mounted by api/v1/users.py):
    GET                 /{namespace}/user-by-id-number/{wrdsb_id_number}
    POST | PUT | PATCH  /{namespace}/user-by-id-number/{wrdsb_id_number}

The ID number is stored as user meta under ID_NUMBER_META_KEY.
"""

from wrdsb_rest.controllers.base import AlternateKeyUsersController


class UserByIdNumberController(AlternateKeyUsersController):
    rest_base = "user-by-id-number"
    identifier_pattern = r"[a-zA-Z0-9-]+"

    def lookup_key(self) -> str:
        return self.settings.ID_NUMBER_META_KEY
