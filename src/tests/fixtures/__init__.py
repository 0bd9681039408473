"""Test fixtures: request payload factories and user helpers."""

from tests.fixtures.factories import (
    DEFAULT_PASSWORD,
    GroupPayloadFactory,
    GroupTaskPayloadFactory,
    PayloadFactory,
    PersonalTaskPayloadFactory,
    UserPayloadFactory,
    register_user,
)

__all__ = [
    "DEFAULT_PASSWORD",
    "PayloadFactory",
    "UserPayloadFactory",
    "PersonalTaskPayloadFactory",
    "GroupPayloadFactory",
    "GroupTaskPayloadFactory",
    "register_user",
]
