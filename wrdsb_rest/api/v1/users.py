"""
users.py — User Lookup API Endpoints

Purpose:
- Expose the alternate-key user controllers over HTTP:
    • GET    /{namespace}/user-by-id-number/{id}   → read one user
    • POST | PUT | PATCH same path                → update that user
    • OPTIONS same path / collection path         → namespace, methods, schema
  and the same set under /{namespace}/user-by-email/{email}.

Role in System:
- The API layer holds no business logic. It builds a controller for the
  request (directory + role registry + authorization oracle over one DB
  session), hands it the path/query/body values and returns its result.
- Errors are raised as RestError and rendered by the handler in main.py.

Data Flow:
Client → FastAPI Router → (this file) → controller → directory / oracle → response
"""

from typing import Any, Callable, Dict, List, Literal, Optional, Type

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, EmailStr
from sqlalchemy.orm import Session

from wrdsb_rest.controllers import (
    AlternateKeyUsersController,
    ControllerHooks,
    UserByEmailController,
    UserByIdNumberController,
)
from wrdsb_rest.core.config import settings
from wrdsb_rest.core.database import get_db
from wrdsb_rest.core.errors import NotFoundError
from wrdsb_rest.core.logging import get_logger
from wrdsb_rest.core.security import get_current_actor_id
from wrdsb_rest.services import AuthorizationOracle, RoleRegistry, UserDirectory

logger = get_logger(__name__)

router = APIRouter(tags=["users"])

# Extension hooks shared by every user controller
controller_hooks = ControllerHooks()

# -----------------------------------------------------------------------------
# Schemas
# -----------------------------------------------------------------------------

class UserUpdate(BaseModel):
    """
    Request body for updates. Every key is optional; keys that are unknown
    or read-only are accepted and ignored.
    """
    model_config = ConfigDict(extra="allow")

    username: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    url: Optional[str] = None
    description: Optional[str] = None
    nickname: Optional[str] = None
    slug: Optional[str] = None
    password: Optional[str] = None
    roles: Optional[List[str]] = None
    meta: Optional[Dict[str, Any]] = None


Context = Literal["embed", "view", "edit"]

# -----------------------------------------------------------------------------
# Controller dependencies
# -----------------------------------------------------------------------------

def controller_dependency(
    controller_cls: Type[AlternateKeyUsersController],
) -> Callable[..., AlternateKeyUsersController]:
    """
    FastAPI dependency building `controller_cls` for the current request.
    """

    def _build(
        db: Session = Depends(get_db),
        actor_id: int = Depends(get_current_actor_id),
    ) -> AlternateKeyUsersController:
        directory = UserDirectory(db)
        roles = RoleRegistry(db)
        oracle = AuthorizationOracle(directory, roles, actor_id, settings)
        return controller_cls(directory, oracle, roles, settings, hooks=controller_hooks)

    _build.__name__ = f"get_{controller_cls.__name__}"
    return _build


get_id_number_controller = controller_dependency(UserByIdNumberController)
get_email_controller = controller_dependency(UserByEmailController)


def _require_route_match(controller: AlternateKeyUsersController, alternate_id: str) -> None:
    if not controller.matches_pattern(alternate_id):
        raise NotFoundError("rest_no_route", "No route was found matching the URL and request method.")


def _payload(body: Optional[UserUpdate]) -> Dict[str, Any]:
    return body.model_dump(exclude_unset=True) if body is not None else {}


# -----------------------------------------------------------------------------
# Route registration
# -----------------------------------------------------------------------------

def register_routes(
    api_router: APIRouter,
    controller_cls: Type[AlternateKeyUsersController],
    get_controller: Callable[..., AlternateKeyUsersController],
) -> None:
    """
    Bind read, update and schema routes for one controller under its
    `rest_base`.
    """
    base = f"/{controller_cls.rest_base}"
    item = base + "/{alternate_id}"
    tag = controller_cls.rest_base

    @api_router.get(item, name=f"{tag}:get_item")
    def get_item(
        alternate_id: str,
        context: Context = Query(controller_cls.default_context),
        controller: AlternateKeyUsersController = Depends(get_controller),
    ):
        """
        Return one user in the requested context (default `edit`).
        """
        _require_route_match(controller, alternate_id)
        return controller.get_item(alternate_id, context)

    @api_router.api_route(item, methods=["POST", "PUT", "PATCH"], name=f"{tag}:update_item")
    def update_item(
        alternate_id: str,
        body: Optional[UserUpdate] = Body(None),
        controller: AlternateKeyUsersController = Depends(get_controller),
    ):
        """
        Update one user; the response is the refreshed user in `edit` context.
        """
        _require_route_match(controller, alternate_id)
        payload = _payload(body)
        logger.info(
            "Update %s/%s with fields: %s",
            tag,
            alternate_id,
            ", ".join(sorted(k for k in payload if k != "password")) or "none",
        )
        return controller.update_item(alternate_id, payload)

    @api_router.options(item, name=f"{tag}:item_options")
    def item_options(
        alternate_id: str,
        controller: AlternateKeyUsersController = Depends(get_controller),
    ):
        _require_route_match(controller, alternate_id)
        return controller.get_options()

    @api_router.options(base, name=f"{tag}:collection_options")
    def collection_options(
        controller: AlternateKeyUsersController = Depends(get_controller),
    ):
        return controller.get_options()


register_routes(router, UserByIdNumberController, get_id_number_controller)
register_routes(router, UserByEmailController, get_email_controller)
