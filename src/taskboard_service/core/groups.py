"""Group registry."""

from collections.abc import Mapping
from typing import Any

from taskboard_service.core.errors import NotFound, parse_request, translate_store_error
from taskboard_service.core.guard import Action, AuthorizationGuard
from taskboard_service.core.principal import Principal
from taskboard_service.models import Group, GroupCreate
from taskboard_service.storage import DocumentStore, StoreError
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()


class GroupService:
    """Creates and lists groups.

    Member ids are stored as given; they are not checked against the user
    directory.
    """

    def __init__(self, store: DocumentStore, guard: AuthorizationGuard) -> None:
        self.store = store
        self.guard = guard

    async def create(self, fields: GroupCreate | Mapping[str, Any], principal: Principal | None) -> Group:
        """Create a group with the principal as its creator.

        Raises:
            ValidationError: If name or description is blank or no member is given
        """
        self.guard.authorize(principal, Action.CREATE_GROUP)
        request = parse_request(GroupCreate, fields)

        group = Group(
            name=request.name,
            description=request.description,
            member_ids=request.member_ids,
            created_by_user_id=principal.subject_id,
        )
        try:
            await self.store.insert(Group.collection, group.to_document())
        except StoreError as e:
            raise translate_store_error(e, "Group") from e

        metrics.entities_created_total.labels(kind="group").inc()
        logger.info(
            "group_created",
            group_id=group.id,
            created_by=group.created_by_user_id,
            members=len(group.member_ids),
        )
        return group

    async def list_all(self, principal: Principal | None) -> list[Group]:
        self.guard.authorize(principal, Action.LIST_GROUPS)
        documents = await self.store.find(Group.collection)
        return [Group.from_document(doc) for doc in documents]

    async def get(self, group_id: str) -> Group:
        """Get a group by id.

        Raises:
            NotFound: If the group does not exist
        """
        document = await self.store.get(Group.collection, group_id)
        if document is None:
            raise NotFound("Group", group_id)
        return Group.from_document(document)
