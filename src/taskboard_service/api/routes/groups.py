"""Group and group task endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from taskboard_service.api.dependencies import get_container, require_principal
from taskboard_service.api.responses import envelope
from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.principal import Principal

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("")
async def create_group(
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    group = await container.groups.create(body or {}, principal)
    return envelope(201, "Group created successfully", groupId=group.id, group=group)


@router.get("")
async def list_groups(
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    groups = await container.groups.list_all(principal)
    return envelope(200, groups=groups)


@router.post("/{group_id}/groupTasks")
async def create_group_task(
    group_id: str,
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    task = await container.workflow.create_task(group_id, body or {}, principal)
    return envelope(201, "Group task created successfully", taskId=task.id, task=task)


@router.get("/{group_id}/groupTasks")
async def list_group_tasks(
    group_id: str,
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    tasks = await container.workflow.list_tasks(group_id, principal)
    return envelope(200, tasks=tasks)


@router.get("/{group_id}/board")
async def group_board(
    group_id: str,
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    """Tasks of the group bucketed into board columns."""
    board = await container.workflow.board(group_id, principal)
    return envelope(200, board=board)


@router.put("/{group_id}/groupTasks/{task_id}/status")
async def update_group_task_status(
    group_id: str,
    task_id: str,
    body: dict[str, Any] | None = Body(default=None),
    principal: Principal = Depends(require_principal),
    container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    task = await container.workflow.update_status(task_id, body or {}, principal, group_id=group_id)
    return envelope(200, "Task status updated successfully", task=task)
