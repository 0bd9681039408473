"""Personal task endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from taskboard_service.api.dependencies import get_container, optional_principal, require_principal
from taskboard_service.api.responses import envelope
from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.errors import parse_request
from taskboard_service.core.guard import Action
from taskboard_service.core.principal import Principal
from taskboard_service.models import TaskDeleteRequest

router = APIRouter(tags=["tasks"])


@router.post("/tasks")
async def create_task(
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    task = await container.personal_tasks.create(body or {}, principal)
    return envelope(201, "Task created successfully", taskId=task.id, task=task)


@router.get("/tasks")
async def list_own_tasks(
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    tasks = await container.personal_tasks.list_for_owner(principal)
    return envelope(200, tasks=tasks)


@router.get("/all-tasks")
async def list_all_tasks(
    principal: Principal | None = Depends(optional_principal(Action.LIST_ALL_PERSONAL_TASKS)),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    tasks = await container.personal_tasks.list_all(principal)
    return envelope(200, tasks=tasks)


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    task = await container.personal_tasks.update(task_id, body or {}, principal)
    return envelope(200, "Task updated successfully", task=task)


@router.delete("/tasks")
async def delete_task_by_body(
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    """Delete a task whose id is sent in the request body."""
    request = parse_request(TaskDeleteRequest, body or {})
    await container.personal_tasks.delete(request.id, principal)
    return envelope(200, "Task deleted successfully")


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    await container.personal_tasks.delete(task_id, principal)
    return envelope(200, "Task deleted successfully")
