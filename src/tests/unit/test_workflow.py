"""Unit tests for the group task workflow."""

import asyncio

import pytest
import pytest_asyncio
from prometheus_client import REGISTRY

from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.errors import Conflict, Forbidden, NotFound, ValidationError
from taskboard_service.core.principal import Principal
from taskboard_service.core.workflow import GroupTaskWorkflow
from taskboard_service.models import OTHER_COLUMN, Group, GroupTaskStatus, User
from tests.fixtures.factories import GroupPayloadFactory, GroupTaskPayloadFactory


def transition_series() -> set[tuple[tuple[str, str], ...]]:
    """Label sets currently exported for the transition counter."""
    return {
        tuple(sorted(sample.labels.items()))
        for metric in REGISTRY.collect()
        if metric.name == "taskboard_workflow_transitions"
        for sample in metric.samples
        if sample.name.endswith("_total")
    }


@pytest_asyncio.fixture
async def group(container: ServiceContainer, alice: User, bob: User, alice_principal: Principal) -> Group:
    """A group created by alice with bob as member."""
    return await container.groups.create(GroupPayloadFactory.create([alice.id, bob.id]), alice_principal)


class TestCreateTask:
    """Tests for GroupTaskWorkflow.create_task."""

    @pytest.mark.asyncio
    async def test_creator_creates_and_lists(
        self,
        container: ServiceContainer,
        group: Group,
        bob: User,
        alice_principal: Principal,
    ) -> None:
        """Test the created task is listed with the submitted values."""
        payload = GroupTaskPayloadFactory.create(bob.id)

        task = await container.workflow.create_task(group.id, payload, alice_principal)
        listed = {t.id: t for t in await container.workflow.list_tasks(group.id, alice_principal)}

        assert task.id in listed
        stored = listed[task.id]
        assert stored.name == payload["name"]
        assert stored.description == payload["description"]
        assert stored.assigned_to_user_id == bob.id
        assert stored.status == "ToDo"
        assert stored.created_by_user_id == group.created_by_user_id

    @pytest.mark.asyncio
    async def test_non_creator_forbidden(
        self,
        container: ServiceContainer,
        group: Group,
        bob: User,
        bob_principal: Principal,
    ) -> None:
        with pytest.raises(Forbidden):
            await container.workflow.create_task(group.id, GroupTaskPayloadFactory.create(bob.id), bob_principal)

    @pytest.mark.asyncio
    async def test_missing_group(self, container: ServiceContainer, alice_principal: Principal) -> None:
        with pytest.raises(NotFound):
            await container.workflow.create_task("missing", GroupTaskPayloadFactory.create("u1"), alice_principal)

    @pytest.mark.asyncio
    async def test_missing_group_checked_before_permission(
        self,
        container: ServiceContainer,
        bob_principal: Principal,
    ) -> None:
        with pytest.raises(NotFound):
            await container.workflow.create_task("missing", {}, bob_principal)

    @pytest.mark.asyncio
    async def test_permission_checked_before_validation(
        self,
        container: ServiceContainer,
        group: Group,
        bob_principal: Principal,
    ) -> None:
        with pytest.raises(Forbidden):
            await container.workflow.create_task(group.id, {}, bob_principal)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["name", "description", "assignedToUserId", "status"])
    async def test_missing_field(
        self,
        container: ServiceContainer,
        group: Group,
        alice_principal: Principal,
        field: str,
    ) -> None:
        payload = GroupTaskPayloadFactory.create("u1")
        del payload[field]

        with pytest.raises(ValidationError):
            await container.workflow.create_task(group.id, payload, alice_principal)

    @pytest.mark.asyncio
    async def test_legacy_assigned_to(
        self,
        container: ServiceContainer,
        group: Group,
        bob: User,
        alice_principal: Principal,
    ) -> None:
        task = await container.workflow.create_task(
            group.id,
            {"name": "n", "description": "d", "assignedTo": bob.id, "status": "ToDo"},
            alice_principal,
        )

        assert task.assigned_to_user_id == bob.id


class TestListTasks:
    @pytest.mark.asyncio
    async def test_empty_group_yields_empty_list(
        self,
        container: ServiceContainer,
        group: Group,
        alice_principal: Principal,
    ) -> None:
        assert await container.workflow.list_tasks(group.id, alice_principal) == []

    @pytest.mark.asyncio
    async def test_absent_group(self, container: ServiceContainer, alice_principal: Principal) -> None:
        with pytest.raises(NotFound):
            await container.workflow.list_tasks("missing", alice_principal)

    @pytest.mark.asyncio
    async def test_tasks_scoped_to_group(
        self,
        container: ServiceContainer,
        group: Group,
        bob: User,
        alice_principal: Principal,
    ) -> None:
        other = await container.groups.create(GroupPayloadFactory.create([bob.id]), alice_principal)
        await container.workflow.create_task(group.id, GroupTaskPayloadFactory.create(bob.id), alice_principal)
        await container.workflow.create_task(other.id, GroupTaskPayloadFactory.create(bob.id), alice_principal)

        assert len(await container.workflow.list_tasks(group.id, alice_principal)) == 1


class TestUpdateStatus:
    """Tests for GroupTaskWorkflow.update_status."""

    @pytest_asyncio.fixture
    async def task_for_bob(self, container: ServiceContainer, group: Group, bob: User, alice_principal: Principal):
        return await container.workflow.create_task(group.id, GroupTaskPayloadFactory.create(bob.id), alice_principal)

    @pytest.mark.asyncio
    async def test_assignee_moves_task(
        self,
        container: ServiceContainer,
        group: Group,
        task_for_bob,
        bob_principal: Principal,
        alice_principal: Principal,
    ) -> None:
        updated = await container.workflow.update_status(task_for_bob.id, "InProgress", bob_principal)

        assert updated.status == "InProgress"
        assert updated.updated_at is not None
        listed = await container.workflow.list_tasks(group.id, alice_principal)
        assert listed[0].status == "InProgress"

    @pytest.mark.asyncio
    async def test_any_string_status_accepted(
        self,
        container: ServiceContainer,
        task_for_bob,
        bob_principal: Principal,
    ) -> None:
        updated = await container.workflow.update_status(task_for_bob.id, {"status": "Waiting on QA"}, bob_principal)

        assert updated.status == "Waiting on QA"

    @pytest.mark.asyncio
    async def test_direct_jump_allowed(self, container: ServiceContainer, task_for_bob, bob_principal: Principal) -> None:
        assert (await container.workflow.update_status(task_for_bob.id, "Done", bob_principal)).status == "Done"
        assert (await container.workflow.update_status(task_for_bob.id, "ToDo", bob_principal)).status == "ToDo"

    @pytest.mark.asyncio
    async def test_non_assignee_forbidden(
        self,
        container: ServiceContainer,
        task_for_bob,
        alice_principal: Principal,
    ) -> None:
        """Test even the group creator cannot move a task assigned to someone else."""
        with pytest.raises(Forbidden):
            await container.workflow.update_status(task_for_bob.id, "Done", alice_principal)

        assert (await container.workflow.get_task(task_for_bob.id)).status == "ToDo"

    @pytest.mark.asyncio
    async def test_missing_task(self, container: ServiceContainer, bob_principal: Principal) -> None:
        with pytest.raises(NotFound):
            await container.workflow.update_status("missing", "Done", bob_principal)

    @pytest.mark.asyncio
    async def test_wrong_group(self, container: ServiceContainer, task_for_bob, bob_principal: Principal) -> None:
        with pytest.raises(NotFound):
            await container.workflow.update_status(task_for_bob.id, "Done", bob_principal, group_id="other-group")

    @pytest.mark.asyncio
    async def test_blank_status(self, container: ServiceContainer, task_for_bob, bob_principal: Principal) -> None:
        with pytest.raises(ValidationError):
            await container.workflow.update_status(task_for_bob.id, "  ", bob_principal)

    @pytest.mark.asyncio
    async def test_strict_statuses(self, container: ServiceContainer, task_for_bob, bob_principal: Principal) -> None:
        strict = GroupTaskWorkflow(container.store, container.guard, container.groups, strict_statuses=True)

        with pytest.raises(ValidationError):
            await strict.update_status(task_for_bob.id, "Waiting", bob_principal)
        assert (await strict.update_status(task_for_bob.id, "Done", bob_principal)).status == "Done"

    @pytest.mark.asyncio
    async def test_free_form_statuses_share_one_metric_series(
        self,
        container: ServiceContainer,
        task_for_bob,
        bob_principal: Principal,
    ) -> None:
        """Test client-chosen statuses are counted under the other column."""
        labels = {"from_status": OTHER_COLUMN, "to_status": OTHER_COLUMN}
        before = REGISTRY.get_sample_value("taskboard_workflow_transitions_total", labels) or 0.0

        for i in range(6):
            await container.workflow.update_status(task_for_bob.id, f"client-chosen-{i}", bob_principal)

        allowed = set(GroupTaskStatus.values()) | {OTHER_COLUMN}
        for series in transition_series():
            assert {value for _, value in series} <= allowed
        # First move leaves ToDo, the rest stay within other
        assert REGISTRY.get_sample_value("taskboard_workflow_transitions_total", labels) == before + 5
        assert (await container.workflow.get_task(task_for_bob.id)).status == "client-chosen-5"

    @pytest.mark.asyncio
    async def test_lost_race_is_conflict(
        self,
        container: ServiceContainer,
        task_for_bob,
        bob_principal: Principal,
    ) -> None:
        """Test a write based on a stale read surfaces as Conflict."""
        original_get = container.store.get

        async def stale_get(collection: str, document_id: str):
            document = await original_get(collection, document_id)
            # Another session writes between our read and our write
            await container.store.update(collection, document_id, {"status": "Done"})
            return document

        container.store.get = stale_get
        try:
            with pytest.raises(Conflict):
                await container.workflow.update_status(task_for_bob.id, "InProgress", bob_principal)
        finally:
            container.store.get = original_get

        assert (await container.workflow.get_task(task_for_bob.id)).status == "Done"

    @pytest.mark.asyncio
    async def test_concurrent_transitions_both_serialize(
        self,
        container: ServiceContainer,
        task_for_bob,
        bob_principal: Principal,
    ) -> None:
        results = await asyncio.gather(
            container.workflow.update_status(task_for_bob.id, "InProgress", bob_principal),
            container.workflow.update_status(task_for_bob.id, "Done", bob_principal),
            return_exceptions=True,
        )

        assert all(not isinstance(r, Exception) or isinstance(r, Conflict) for r in results)


class TestBoard:
    @pytest.mark.asyncio
    async def test_columns(
        self,
        container: ServiceContainer,
        group: Group,
        bob: User,
        alice_principal: Principal,
    ) -> None:
        """Test tasks land in their status column and unknown statuses in other."""
        for status in ["ToDo", "ToDo", "Done", "Blocked"]:
            await container.workflow.create_task(
                group.id,
                GroupTaskPayloadFactory.create(bob.id, status=status),
                alice_principal,
            )

        board = await container.workflow.board(group.id, alice_principal)

        assert list(board) == ["ToDo", "InProgress", "Done", "other"]
        assert [len(board[c]) for c in board] == [2, 0, 1, 1]

    @pytest.mark.asyncio
    async def test_absent_group(self, container: ServiceContainer, alice_principal: Principal) -> None:
        with pytest.raises(NotFound):
            await container.workflow.board("missing", alice_principal)
