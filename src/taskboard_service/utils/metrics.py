"""Prometheus metrics for observability."""

from functools import lru_cache

from prometheus_client import Counter, Histogram, Info

from taskboard_service import __version__


class Metrics:
    """Prometheus metrics for the taskboard service."""

    def __init__(self) -> None:
        """Initialize all metrics."""
        # Service info
        self.info = Info(
            "taskboard_service",
            "Taskboard service information",
        )
        self.info.info({"version": __version__})

        # HTTP
        self.http_requests_total = Counter(
            "taskboard_http_requests_total",
            "Total number of HTTP requests",
            ["method", "route", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "taskboard_http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "route"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
        )

        # Authentication and authorization
        self.auth_failures_total = Counter(
            "taskboard_auth_failures_total",
            "Total number of failed authentications",
            ["reason"],
        )

        self.guard_decisions_total = Counter(
            "taskboard_guard_decisions_total",
            "Authorization guard decisions",
            ["action", "outcome"],
        )

        # Storage
        self.store_operations_total = Counter(
            "taskboard_store_operations_total",
            "Total number of document store operations",
            ["store", "operation", "status"],
        )

        self.store_operation_duration_seconds = Histogram(
            "taskboard_store_operation_duration_seconds",
            "Duration of document store operations in seconds",
            ["store", "operation"],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
        )

        # Workflow
        self.workflow_transitions_total = Counter(
            "taskboard_workflow_transitions_total",
            "Group task status transitions",
            ["from_status", "to_status"],
        )

        self.entities_created_total = Counter(
            "taskboard_entities_created_total",
            "Entities created by kind",
            ["kind"],
        )

    def record_http_request(
        self,
        method: str,
        route: str,
        status: int,
        duration: float,
    ) -> None:
        """Record an HTTP request metric.

        Args:
            method: HTTP method
            route: Route template (e.g. /groups/{group_id}/groupTasks)
            status: Response status code
            duration: Request duration in seconds
        """
        self.http_requests_total.labels(
            method=method,
            route=route,
            status=str(status),
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method,
            route=route,
        ).observe(duration)

    def record_store_operation(
        self,
        store: str,
        operation: str,
        status: str,
        duration: float,
    ) -> None:
        """Record a store operation metric.

        Args:
            store: Store backend name (memory, sqlite)
            operation: Operation name (insert, get, find, update, delete)
            status: Operation status (success, error)
            duration: Operation duration in seconds
        """
        self.store_operations_total.labels(
            store=store,
            operation=operation,
            status=status,
        ).inc()
        self.store_operation_duration_seconds.labels(
            store=store,
            operation=operation,
        ).observe(duration)

    def record_guard_decision(self, action: str, allowed: bool) -> None:
        """Record an authorization decision."""
        self.guard_decisions_total.labels(
            action=action,
            outcome="allowed" if allowed else "denied",
        ).inc()

    def record_transition(self, from_status: str, to_status: str) -> None:
        """Record a group task status transition."""
        self.workflow_transitions_total.labels(
            from_status=from_status,
            to_status=to_status,
        ).inc()


@lru_cache
def get_metrics() -> Metrics:
    """Get cached metrics instance."""
    return Metrics()
