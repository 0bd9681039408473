"""FastAPI dependencies: service container and principal resolution."""

from collections.abc import Awaitable, Callable

from fastapi import Header, Request

from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.guard import Action
from taskboard_service.core.principal import Principal


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def require_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Principal:
    """Resolve the bearer token; a missing token is an error."""
    return await get_container(request).resolver.resolve(authorization)


def optional_principal(action: Action) -> Callable[..., Awaitable[Principal | None]]:
    """Build a dependency resolving the bearer token when one is sent.

    Used by routes whose access depends on the policy; the guard decides
    whether an anonymous caller is allowed. While the action is public, a
    token that fails verification (typically an expired session) is dropped
    and the caller is served anonymously.
    """

    async def resolve(
        request: Request,
        authorization: str | None = Header(default=None),
    ) -> Principal | None:
        container = get_container(request)
        return await container.resolver.resolve_optional(
            authorization,
            ignore_invalid=container.guard.is_public(action),
        )

    return resolve
