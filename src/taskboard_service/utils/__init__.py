"""Shared utilities."""

from taskboard_service.utils.logging import get_logger, setup_logging
from taskboard_service.utils.metrics import get_metrics
from taskboard_service.utils.validators import (
    validate_email,
    validate_field_name,
    validate_username,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "get_metrics",
    "validate_email",
    "validate_field_name",
    "validate_username",
]
