"""Principal resolution: bearer credential -> authenticated identity."""

from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from taskboard_service.core.errors import InvalidToken, Unauthenticated
from taskboard_service.core.security import TokenService
from taskboard_service.models.users import User, UserRole
from taskboard_service.utils.logging import get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

UserLookup = Callable[[str], Awaitable[User | None]]


class IdentityForm(str, Enum):
    """Which identity of a principal a rule compares against."""

    ID = "id"
    USERNAME = "username"


class Principal(BaseModel):
    """An authenticated identity.

    Carries both the stable user id and the human-readable username, so
    callers never need to know which claim shape the token used.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    subject_id: str | None = None
    username: str | None = None
    role: UserRole | None = None

    @model_validator(mode="after")
    def require_identity(self) -> "Principal":
        if not self.subject_id and not self.username:
            raise ValueError("principal needs a subject id or a username")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def identity(self, form: IdentityForm) -> str | None:
        """Return the identity of the requested form, if known."""
        if form == IdentityForm.ID:
            return self.subject_id
        return self.username

    @classmethod
    def for_user(cls, user: User) -> "Principal":
        return cls(subject_id=user.id, username=user.username, role=user.role)


class PrincipalResolver:
    """Turns an ``Authorization`` header (or raw token) into a Principal.

    Verification is stateless. When a legacy token carries only a username
    and a user lookup is wired in, the id is filled from the user directory;
    the lookup is read-only.
    """

    def __init__(self, tokens: TokenService, user_lookup: UserLookup | None = None) -> None:
        self.tokens = tokens
        self.user_lookup = user_lookup

    @staticmethod
    def extract_token(authorization: str | None) -> str:
        """Pull the token out of a ``Bearer <token>`` header.

        Raises:
            Unauthenticated: If no credential is present
            InvalidToken: If the header is not a bearer credential
        """
        if authorization is None or not authorization.strip():
            raise Unauthenticated()

        parts = authorization.split()
        if len(parts) == 1:
            return parts[0]
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        raise InvalidToken("Malformed authorization header")

    async def resolve(self, authorization: str | None) -> Principal:
        """Resolve a credential into a principal.

        Raises:
            Unauthenticated: If no credential is present
            InvalidToken: If the token fails verification or names no subject
        """
        try:
            token = self.extract_token(authorization)
            claims = self.tokens.decode(token)
        except Unauthenticated:
            metrics.auth_failures_total.labels(reason="missing_token").inc()
            raise
        except InvalidToken as e:
            metrics.auth_failures_total.labels(reason="invalid_token").inc()
            logger.info("token_rejected", reason=e.message)
            raise

        subject_id = _claim(claims.get("sub"))
        username = _claim(claims.get("username") or claims.get("userId"))
        role = claims.get("role")

        if subject_id is None and username and self.user_lookup is not None:
            user = await self.user_lookup(username)
            if user is not None:
                subject_id = user.id
                role = role or user.role

        if not subject_id and not username:
            metrics.auth_failures_total.labels(reason="no_subject").inc()
            raise InvalidToken("Token has no subject")

        if role not in {r.value for r in UserRole}:
            role = None

        return Principal(subject_id=subject_id, username=username, role=role)

    async def resolve_optional(
        self,
        authorization: str | None,
        ignore_invalid: bool = False,
    ) -> Principal | None:
        """Like resolve, but a missing credential yields None.

        Args:
            authorization: Header value or raw token
            ignore_invalid: Treat a token that fails verification as absent

        Raises:
            InvalidToken: If the token fails verification and ignore_invalid is off
        """
        if authorization is None or not authorization.strip():
            return None
        try:
            return await self.resolve(authorization)
        except InvalidToken as e:
            if not ignore_invalid:
                raise
            logger.info("invalid_token_ignored", reason=e.message)
            return None


def _claim(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
