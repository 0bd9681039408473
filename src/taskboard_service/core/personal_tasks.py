"""Personal task store."""

from collections.abc import Mapping
from typing import Any

from taskboard_service.core.errors import NotFound, parse_request, translate_store_error
from taskboard_service.core.guard import Action, AuthorizationGuard
from taskboard_service.core.principal import Principal
from taskboard_service.models import (
    PersonalTask,
    PersonalTaskCreate,
    PersonalTaskUpdate,
    utcnow,
)
from taskboard_service.storage import DocumentStore, StoreError
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()


class PersonalTaskService:
    """CRUD over tasks owned by a single user.

    The owner is always taken from the principal's username, never from the
    request body.
    """

    def __init__(self, store: DocumentStore, guard: AuthorizationGuard) -> None:
        self.store = store
        self.guard = guard

    async def get(self, task_id: str) -> PersonalTask:
        document = await self.store.get(PersonalTask.collection, task_id)
        if document is None:
            raise NotFound("Task", task_id)
        return PersonalTask.from_document(document)

    async def create(
        self,
        fields: PersonalTaskCreate | Mapping[str, Any],
        principal: Principal | None,
    ) -> PersonalTask:
        """Create a personal task owned by the principal.

        Raises:
            ValidationError: If a required field is missing or blank
        """
        self.guard.authorize(principal, Action.CREATE_PERSONAL_TASK)
        request = parse_request(PersonalTaskCreate, fields)

        task = PersonalTask(owner_username=principal.username, **request.model_dump())
        try:
            await self.store.insert(PersonalTask.collection, task.to_document())
        except StoreError as e:
            raise translate_store_error(e, "Task") from e

        metrics.entities_created_total.labels(kind="personal_task").inc()
        logger.info("personal_task_created", task_id=task.id, owner=task.owner_username)
        return task

    async def list_for_owner(self, principal: Principal | None) -> list[PersonalTask]:
        """Tasks owned by the principal."""
        self.guard.authorize(principal, Action.LIST_OWN_PERSONAL_TASKS)
        documents = await self.store.find(PersonalTask.collection, owner_username=principal.username)
        return [PersonalTask.from_document(doc) for doc in documents]

    async def list_all(self, principal: Principal | None = None) -> list[PersonalTask]:
        """Every personal task of every user."""
        self.guard.authorize(principal, Action.LIST_ALL_PERSONAL_TASKS)
        documents = await self.store.find(PersonalTask.collection)
        return [PersonalTask.from_document(doc) for doc in documents]

    async def update(
        self,
        task_id: str,
        fields: PersonalTaskUpdate | Mapping[str, Any],
        principal: Principal | None,
    ) -> PersonalTask:
        """Apply a partial update.

        Raises:
            ValidationError: If no field is given or a value is malformed
            NotFound: If the task does not exist
            Forbidden: If the principal may not modify the task
            Conflict: If the task changed concurrently
        """
        request = parse_request(PersonalTaskUpdate, fields)
        task = await self.get(task_id)
        self.guard.authorize(principal, Action.UPDATE_PERSONAL_TASK, task)

        changes = request.provided()
        changes["updated_at"] = utcnow().isoformat()
        try:
            document = await self.store.update(
                PersonalTask.collection,
                task_id,
                changes,
                expected_version=task.version,
            )
        except StoreError as e:
            raise translate_store_error(e, "Task") from e

        logger.info("personal_task_updated", task_id=task_id, fields=sorted(request.model_fields_set))
        return PersonalTask.from_document(document)

    async def delete(self, task_id: str, principal: Principal | None) -> None:
        """Delete a task.

        Raises:
            NotFound: If the task does not exist
            Forbidden: If the principal may not delete the task
        """
        task = await self.get(task_id)
        self.guard.authorize(principal, Action.DELETE_PERSONAL_TASK, task)
        if not await self.store.delete(PersonalTask.collection, task_id):
            raise NotFound("Task", task_id)
        logger.info("personal_task_deleted", task_id=task_id, by=principal.username)
