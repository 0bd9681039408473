"""HTTP route modules."""

from taskboard_service.api.routes import groups, tasks, users

__all__ = ["groups", "tasks", "users"]
