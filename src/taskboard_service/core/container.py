"""Service wiring.

Builds every core service around one injected document store, so tests and
the HTTP server share the same construction path.
"""

from dataclasses import dataclass

from taskboard_service.config import Settings
from taskboard_service.core.groups import GroupService
from taskboard_service.core.guard import AccessPolicy, AuthorizationGuard
from taskboard_service.core.personal_tasks import PersonalTaskService
from taskboard_service.core.principal import PrincipalResolver
from taskboard_service.core.security import PasswordHasher, TokenService
from taskboard_service.core.users import UserService
from taskboard_service.core.workflow import GroupTaskWorkflow
from taskboard_service.storage import DocumentStore, create_store
from taskboard_service.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """All services of a running instance."""

    settings: Settings
    store: DocumentStore
    tokens: TokenService
    hasher: PasswordHasher
    guard: AuthorizationGuard
    resolver: PrincipalResolver
    users: UserService
    personal_tasks: PersonalTaskService
    groups: GroupService
    workflow: GroupTaskWorkflow

    @classmethod
    def build(cls, settings: Settings, store: DocumentStore | None = None) -> "ServiceContainer":
        """Wire services from settings.

        Args:
            settings: Application settings
            store: Store to use; built from settings when omitted
        """
        store = store or create_store(settings)
        tokens = TokenService(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.token_expire_minutes,
        )
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        guard = AuthorizationGuard(AccessPolicy.from_settings(settings))

        users = UserService(store, guard, hasher, tokens)
        groups = GroupService(store, guard)

        return cls(
            settings=settings,
            store=store,
            tokens=tokens,
            hasher=hasher,
            guard=guard,
            resolver=PrincipalResolver(tokens, user_lookup=users.find_by_username),
            users=users,
            personal_tasks=PersonalTaskService(store, guard),
            groups=groups,
            workflow=GroupTaskWorkflow(
                store,
                guard,
                groups,
                strict_statuses=settings.strict_board_statuses,
            ),
        )

    async def start(self) -> None:
        await self.store.initialize()
        logger.info("services_started", store=self.store.backend_name, policy=str(self.guard.policy))

    async def stop(self) -> None:
        await self.store.close()
        logger.info("services_stopped")
