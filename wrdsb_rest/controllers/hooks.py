"""
hooks.py — Extension Points for User Controllers

Each hook runs once, at a fixed point in the request pipeline:

    additional_fields   extra FieldDescriptors, rendered and (when they carry
                        an `update` callable) written like built-in fields
    prepare_response    (data, user) -> data, after rendering and before
                        context filtering
    pre_insert          (prepared, payload) -> prepared, just before the
                        directory update
    after_update        (user, payload) -> None, after every write and
                        before the commit

Defaults change nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Sequence

from wrdsb_rest.controllers.user_fields import FieldDescriptor
from wrdsb_rest.models import User


def _identity_response(data: Dict[str, Any], user: User) -> Dict[str, Any]:
    return data


def _identity_prepared(prepared: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    return prepared


def _noop_after_update(user: User, payload: Dict[str, Any]) -> None:
    return None


@dataclass
class ControllerHooks:
    additional_fields: Sequence[FieldDescriptor] = ()
    prepare_response: Callable[[Dict[str, Any], User], Dict[str, Any]] = _identity_response
    pre_insert: Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]] = _identity_prepared
    after_update: Callable[[User, Dict[str, Any]], None] = _noop_after_update
