"""Registration, login and user management endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from taskboard_service.api.dependencies import get_container, optional_principal, require_principal
from taskboard_service.api.responses import envelope
from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.guard import Action
from taskboard_service.core.principal import Principal

router = APIRouter(tags=["users"])


@router.post("/register")
async def register(
    body: dict[str, Any] | None = Body(default=None),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    user = await container.users.register(body or {})
    return envelope(201, "User registered successfully", data=user)


@router.post("/validate")
async def validate(
    body: dict[str, Any] | None = Body(default=None),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    """Authenticate and return a bearer token."""
    token, user = await container.users.authenticate(body or {})
    return envelope(
        200,
        "Authentication successful",
        data={
            "token": token,
            "user": {"id": user.id, "username": user.username, "email": user.email, "role": user.role},
        },
    )


@router.get("/users")
async def list_users(
    principal: Principal | None = Depends(optional_principal(Action.LIST_USERS)),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    users = await container.users.list_users(principal)
    return envelope(200, users=users)


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    user = await container.users.update(user_id, body or {}, principal)
    return envelope(200, "User updated successfully", data=user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    await container.users.delete(user_id, principal)
    return envelope(200, "User deleted successfully")


@router.get("/user/role")
async def own_role(
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    role = await container.users.role_of(principal)
    return envelope(200, data={"role": role})
