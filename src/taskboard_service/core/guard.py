"""Authorization guard.

Every permission decision of the service is one ``Rule`` in ``RULES``: a
predicate over (principal, resource, policy) plus the identity form it
compares. Tightening a rule means editing one predicate or flipping one
``AccessPolicy`` flag.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from taskboard_service.config import Settings
from taskboard_service.core.errors import Forbidden, Unauthenticated
from taskboard_service.core.principal import IdentityForm, Principal
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()


class Action(str, Enum):
    """Guarded actions."""

    CREATE_PERSONAL_TASK = "create_personal_task"
    LIST_OWN_PERSONAL_TASKS = "list_own_personal_tasks"
    LIST_ALL_PERSONAL_TASKS = "list_all_personal_tasks"
    UPDATE_PERSONAL_TASK = "update_personal_task"
    DELETE_PERSONAL_TASK = "delete_personal_task"
    CREATE_GROUP = "create_group"
    LIST_GROUPS = "list_groups"
    CREATE_GROUP_TASK = "create_group_task"
    LIST_GROUP_TASKS = "list_group_tasks"
    UPDATE_GROUP_TASK_STATUS = "update_group_task_status"
    LIST_USERS = "list_users"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    READ_OWN_ROLE = "read_own_role"


@dataclass(frozen=True)
class AccessPolicy:
    """Switches that tighten or relax individual rules."""

    enforce_task_ownership: bool = True
    restrict_user_mutations: bool = False
    require_group_membership: bool = False
    public_task_listing: bool = True
    public_user_listing: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessPolicy":
        return cls(
            enforce_task_ownership=settings.enforce_task_ownership,
            restrict_user_mutations=settings.restrict_user_mutations,
            require_group_membership=settings.require_group_membership,
            public_task_listing=settings.public_task_listing,
            public_user_listing=settings.public_user_listing,
        )


Predicate = Callable[[Principal, Any, AccessPolicy], bool]


@dataclass(frozen=True)
class Rule:
    """One row of the permission table."""

    resource: str
    check: Predicate
    # Identity the predicate compares; the principal must carry it
    identity: IdentityForm | None = None
    # Whether the action may run without any principal under a policy
    public: Callable[[AccessPolicy], bool] = lambda policy: False


# -- predicates ---------------------------------------------------------------


def anyone(principal: Principal, resource: Any, policy: AccessPolicy) -> bool:
    return True


def admin_unless_public_tasks(principal: Principal, resource: Any, policy: AccessPolicy) -> bool:
    return policy.public_task_listing or principal.is_admin


def owns_task(principal: Principal, task: Any, policy: AccessPolicy) -> bool:
    if not policy.enforce_task_ownership or principal.is_admin:
        return True
    return task.owner_username == principal.username


def created_group(principal: Principal, group: Any, policy: AccessPolicy) -> bool:
    return group.created_by_user_id == principal.subject_id


def sees_group(principal: Principal, group: Any, policy: AccessPolicy) -> bool:
    if not policy.require_group_membership or principal.is_admin:
        return True
    return group.has_member(principal.subject_id)


def assigned_to_task(principal: Principal, task: Any, policy: AccessPolicy) -> bool:
    return task.assigned_to_user_id == principal.subject_id


def self_or_admin(principal: Principal, user: Any, policy: AccessPolicy) -> bool:
    if not policy.restrict_user_mutations or principal.is_admin:
        return True
    return user.id == principal.subject_id


RULES: dict[Action, Rule] = {
    Action.CREATE_PERSONAL_TASK: Rule("personal task", anyone, IdentityForm.USERNAME),
    Action.LIST_OWN_PERSONAL_TASKS: Rule("personal tasks", anyone, IdentityForm.USERNAME),
    Action.LIST_ALL_PERSONAL_TASKS: Rule(
        "all personal tasks",
        admin_unless_public_tasks,
        public=lambda policy: policy.public_task_listing,
    ),
    Action.UPDATE_PERSONAL_TASK: Rule("personal task", owns_task, IdentityForm.USERNAME),
    Action.DELETE_PERSONAL_TASK: Rule("personal task", owns_task, IdentityForm.USERNAME),
    Action.CREATE_GROUP: Rule("group", anyone, IdentityForm.ID),
    Action.LIST_GROUPS: Rule("groups", anyone),
    Action.CREATE_GROUP_TASK: Rule("group", created_group, IdentityForm.ID),
    Action.LIST_GROUP_TASKS: Rule("group tasks", sees_group, IdentityForm.ID),
    Action.UPDATE_GROUP_TASK_STATUS: Rule("group task", assigned_to_task, IdentityForm.ID),
    Action.LIST_USERS: Rule("users", anyone, public=lambda policy: policy.public_user_listing),
    Action.UPDATE_USER: Rule("user", self_or_admin, IdentityForm.ID),
    Action.DELETE_USER: Rule("user", self_or_admin, IdentityForm.ID),
    Action.READ_OWN_ROLE: Rule("role", anyone, IdentityForm.USERNAME),
}


class AuthorizationGuard:
    """Gates every mutation and listing against the resolved principal."""

    def __init__(
        self,
        policy: AccessPolicy | None = None,
        rules: dict[Action, Rule] | None = None,
    ) -> None:
        self.policy = policy or AccessPolicy()
        self.rules = {**RULES, **(rules or {})}

    def is_public(self, action: Action) -> bool:
        """Whether the action runs without a principal under the current policy."""
        return self.rules[action].public(self.policy)

    def is_allowed(self, principal: Principal | None, action: Action, resource: Any = None) -> bool:
        rule = self.rules[action]
        if principal is None:
            return rule.public(self.policy)
        if rule.identity is not None and not principal.identity(rule.identity):
            return False
        return rule.check(principal, resource, self.policy)

    def authorize(self, principal: Principal | None, action: Action, resource: Any = None) -> None:
        """Allow or refuse an action.

        Raises:
            Unauthenticated: If the action needs a principal and none was given
            Forbidden: If the principal is not entitled to the action
        """
        rule = self.rules[action]
        if principal is None and not rule.public(self.policy):
            metrics.record_guard_decision(action.value, allowed=False)
            raise Unauthenticated()

        allowed = self.is_allowed(principal, action, resource)
        metrics.record_guard_decision(action.value, allowed=allowed)
        if not allowed:
            logger.info(
                "access_denied",
                action=action.value,
                subject_id=principal.subject_id if principal else None,
                username=principal.username if principal else None,
                resource_id=getattr(resource, "id", None),
            )
            raise Forbidden(action.value.replace("_", " ").split(" ", 1)[0], rule.resource)
