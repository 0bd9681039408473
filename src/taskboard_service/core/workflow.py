"""Group task workflow.

Group tasks move across the board columns ``ToDo``, ``InProgress`` and
``Done``. Any transition between them is allowed; the only gate is that the
caller is the task's assignee. A status write is a compare-and-swap on the
task version, so two assignee sessions racing each other cannot silently
overwrite one another.
"""

from collections.abc import Mapping
from typing import Any

from taskboard_service.core.errors import (
    NotFound,
    ValidationError,
    parse_request,
    translate_store_error,
)
from taskboard_service.core.groups import GroupService
from taskboard_service.core.guard import Action, AuthorizationGuard
from taskboard_service.core.principal import Principal
from taskboard_service.models import (
    GroupTask,
    GroupTaskCreate,
    OTHER_COLUMN,
    GroupTaskStatus,
    StatusUpdate,
    utcnow,
)
from taskboard_service.storage import DocumentStore, StoreError
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

class GroupTaskWorkflow:
    """Creates, lists and transitions the tasks of a group."""

    def __init__(
        self,
        store: DocumentStore,
        guard: AuthorizationGuard,
        groups: GroupService,
        strict_statuses: bool = False,
    ) -> None:
        """Initialize the workflow.

        Args:
            store: Document store
            guard: Authorization guard
            groups: Group registry used to resolve group ids
            strict_statuses: Reject statuses that are not board columns
        """
        self.store = store
        self.guard = guard
        self.groups = groups
        self.strict_statuses = strict_statuses

    def _check_status(self, status: str) -> None:
        if self.strict_statuses and status not in GroupTaskStatus.values():
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(GroupTaskStatus.values())}",
                details=[{"field": "status", "message": "not a board status"}],
            )

    async def get_task(self, task_id: str) -> GroupTask:
        document = await self.store.get(GroupTask.collection, task_id)
        if document is None:
            raise NotFound("Group task", task_id)
        return GroupTask.from_document(document)

    async def create_task(
        self,
        group_id: str,
        fields: GroupTaskCreate | Mapping[str, Any],
        principal: Principal | None,
    ) -> GroupTask:
        """Create a task on a group's board.

        Raises:
            NotFound: If the group does not exist
            Forbidden: If the principal did not create the group
            ValidationError: If name, description, assignee or status is missing
        """
        group = await self.groups.get(group_id)
        self.guard.authorize(principal, Action.CREATE_GROUP_TASK, group)
        request = parse_request(GroupTaskCreate, fields)
        self._check_status(request.status)

        task = GroupTask(
            group_id=group.id,
            name=request.name,
            description=request.description,
            status=request.status,
            assigned_to_user_id=request.assigned_to_user_id,
            created_by_user_id=principal.subject_id,
        )
        try:
            await self.store.insert(GroupTask.collection, task.to_document())
        except StoreError as e:
            raise translate_store_error(e, "Group task") from e

        metrics.entities_created_total.labels(kind="group_task").inc()
        logger.info(
            "group_task_created",
            group_id=group.id,
            task_id=task.id,
            assigned_to=task.assigned_to_user_id,
            status=task.status,
        )
        return task

    async def list_tasks(self, group_id: str, principal: Principal | None = None) -> list[GroupTask]:
        """All tasks of a group; empty when the group has none.

        Raises:
            NotFound: If the group does not exist
        """
        group = await self.groups.get(group_id)
        self.guard.authorize(principal, Action.LIST_GROUP_TASKS, group)
        documents = await self.store.find(GroupTask.collection, group_id=group_id)
        return [GroupTask.from_document(doc) for doc in documents]

    async def board(self, group_id: str, principal: Principal | None = None) -> dict[str, list[GroupTask]]:
        """Tasks of a group bucketed by board column.

        Tasks whose status is not a board column land in ``other``.
        """
        columns: dict[str, list[GroupTask]] = {status: [] for status in GroupTaskStatus.values()}
        columns[OTHER_COLUMN] = []
        for task in await self.list_tasks(group_id, principal):
            columns[GroupTaskStatus.column_for(task.status)].append(task)
        return columns

    async def update_status(
        self,
        task_id: str,
        new_status: StatusUpdate | Mapping[str, Any] | str,
        principal: Principal | None,
        group_id: str | None = None,
    ) -> GroupTask:
        """Move a task to a new status.

        Args:
            task_id: Task to transition
            new_status: The new status, bare or as a request body
            principal: Caller; must be the assignee
            group_id: When given, the task must belong to this group

        Raises:
            ValidationError: If the status is blank (or not a board column in strict mode)
            NotFound: If the task does not exist in the given group
            Forbidden: If the principal is not the assignee
            Conflict: If the task changed between read and write
        """
        if isinstance(new_status, str):
            new_status = {"status": new_status}
        status = parse_request(StatusUpdate, new_status).status
        self._check_status(status)

        task = await self.get_task(task_id)
        if group_id is not None and task.group_id != group_id:
            raise NotFound("Group task", task_id)
        self.guard.authorize(principal, Action.UPDATE_GROUP_TASK_STATUS, task)

        try:
            document = await self.store.update(
                GroupTask.collection,
                task_id,
                {"status": status, "updated_at": utcnow().isoformat()},
                expected_version=task.version,
            )
        except StoreError as e:
            raise translate_store_error(e, "Group task") from e

        # Labels are board columns; free-form statuses collapse into "other"
        metrics.record_transition(GroupTaskStatus.column_for(task.status), GroupTaskStatus.column_for(status))
        logger.info(
            "group_task_status_changed",
            task_id=task_id,
            group_id=task.group_id,
            from_status=task.status,
            to_status=status,
        )
        return GroupTask.from_document(document)
