"""User directory: registration, login and account management."""

import asyncio
from collections.abc import Mapping
from typing import Any

from taskboard_service.core.errors import (
    InvalidCredentials,
    NotFound,
    parse_request,
    translate_store_error,
)
from taskboard_service.core.guard import Action, AuthorizationGuard
from taskboard_service.core.principal import Principal
from taskboard_service.core.security import PasswordHasher, TokenService
from taskboard_service.models import (
    LoginRequest,
    RegisterRequest,
    User,
    UserUpdateRequest,
    utcnow,
)
from taskboard_service.storage import DocumentStore, StoreError
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()


class UserService:
    """Manages user accounts.

    Username and email uniqueness is delegated to the store's unique keys,
    so two concurrent registrations of the same name cannot both succeed.
    """

    def __init__(
        self,
        store: DocumentStore,
        guard: AuthorizationGuard,
        hasher: PasswordHasher,
        tokens: TokenService,
    ) -> None:
        self.store = store
        self.guard = guard
        self.hasher = hasher
        self.tokens = tokens

    async def _hash(self, password: str) -> str:
        # bcrypt is CPU bound; keep it off the event loop
        return await asyncio.to_thread(self.hasher.hash, password)

    async def get(self, user_id: str) -> User:
        """Get a user by id.

        Raises:
            NotFound: If the user does not exist
        """
        document = await self.store.get(User.collection, user_id)
        if document is None:
            raise NotFound("User", user_id)
        return User.from_document(document)

    async def find_by_username(self, username: str) -> User | None:
        documents = await self.store.find(User.collection, username=username)
        return User.from_document(documents[0]) if documents else None

    async def register(self, fields: RegisterRequest | Mapping[str, Any]) -> User:
        """Create a new user.

        Raises:
            ValidationError: If a required field is missing or malformed
            Conflict: If the username or email is already in use
        """
        request = parse_request(RegisterRequest, fields)
        user = User(
            username=request.username,
            email=request.email,
            password_hash=await self._hash(request.password),
            role=request.role,
        )
        try:
            await self.store.insert(User.collection, user.to_document(), unique_fields=User.unique_fields)
        except StoreError as e:
            raise translate_store_error(e, "User") from e

        metrics.entities_created_total.labels(kind="user").inc()
        logger.info("user_registered", user_id=user.id, username=user.username, role=user.role)
        return user

    async def authenticate(self, fields: LoginRequest | Mapping[str, Any]) -> tuple[str, User]:
        """Check credentials and issue a token.

        Returns:
            Tuple of (token, user)

        Raises:
            ValidationError: If username or password is missing
            InvalidCredentials: For an unknown user or a wrong password alike
        """
        request = parse_request(LoginRequest, fields)
        user = await self.find_by_username(request.username)

        if user is None:
            await asyncio.to_thread(self.hasher.verify_dummy, request.password)
            metrics.auth_failures_total.labels(reason="bad_credentials").inc()
            raise InvalidCredentials()

        valid = await asyncio.to_thread(self.hasher.verify, request.password, user.password_hash)
        if not valid:
            metrics.auth_failures_total.labels(reason="bad_credentials").inc()
            raise InvalidCredentials()

        user.record_login()
        try:
            await self.store.update(User.collection, user.id, {"last_login_at": user.last_login_at.isoformat()})
        except StoreError as e:
            # A failed bookkeeping write must not block a valid login
            logger.warning("last_login_update_failed", user_id=user.id, error=str(e))

        logger.info("user_authenticated", user_id=user.id, username=user.username)
        return self.tokens.issue(user), user

    async def list_users(self, principal: Principal | None = None) -> list[User]:
        """Return every user."""
        self.guard.authorize(principal, Action.LIST_USERS)
        documents = await self.store.find(User.collection)
        return [User.from_document(doc) for doc in documents]

    async def update(
        self,
        user_id: str,
        fields: UserUpdateRequest | Mapping[str, Any],
        principal: Principal,
    ) -> User:
        """Apply a partial update to a user.

        Raises:
            ValidationError: If no field is given or a value is malformed
            NotFound: If the user does not exist
            Forbidden: If the policy restricts user mutations
            Conflict: If the new username or email is taken
        """
        request = parse_request(UserUpdateRequest, fields)
        user = await self.get(user_id)
        self.guard.authorize(principal, Action.UPDATE_USER, user)

        changes = request.provided()
        if "password" in changes:
            changes["password_hash"] = await self._hash(changes.pop("password"))
        changes["updated_at"] = utcnow().isoformat()

        try:
            document = await self.store.update(
                User.collection,
                user_id,
                changes,
                unique_fields=User.unique_fields,
                expected_version=user.version,
            )
        except StoreError as e:
            raise translate_store_error(e, "User") from e

        logger.info(
            "user_updated",
            user_id=user_id,
            fields=sorted(k for k in changes if k != "updated_at"),
            by=principal.subject_id or principal.username,
        )
        return User.from_document(document)

    async def delete(self, user_id: str, principal: Principal) -> None:
        """Delete a user.

        Raises:
            NotFound: If the user does not exist
            Forbidden: If the policy restricts user mutations
        """
        user = await self.get(user_id)
        self.guard.authorize(principal, Action.DELETE_USER, user)
        try:
            await self.store.delete(User.collection, user_id)
        except StoreError as e:
            raise translate_store_error(e, "User") from e
        logger.info("user_deleted", user_id=user_id, by=principal.subject_id or principal.username)

    async def role_of(self, principal: Principal) -> str:
        """Look up the principal's role by its username claim.

        Raises:
            NotFound: If no user carries that username any more
        """
        self.guard.authorize(principal, Action.READ_OWN_ROLE)
        user = await self.find_by_username(principal.username or "")
        if user is None:
            raise NotFound("User", principal.username or "")
        return user.role
