"""FastAPI HTTP server."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from taskboard_service import __version__
from taskboard_service.api.responses import error_envelope
from taskboard_service.api.routes import groups, tasks, users
from taskboard_service.config import Settings
from taskboard_service.core.container import ServiceContainer
from taskboard_service.core.errors import Internal, ServiceError, ValidationError
from taskboard_service.utils.logging import bind_request_context, clear_request_context, get_logger
from taskboard_service.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()


def create_http_server(container: ServiceContainer, settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        container: Wired services; its store is opened and closed with the app
        settings: Settings (defaults to the container's)

    Returns:
        FastAPI application
    """
    settings = settings or container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(
        title="Taskboard Service",
        description="Personal tasks, groups and group task boards",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Response:
        """Bind a request id to the log context and record request metrics."""
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("unhandled_error", error=str(e))
            response = error_envelope(Internal("Internal server error", details=str(e)))
        finally:
            clear_request_context()

        route = request.scope.get("route")
        metrics.record_http_request(
            method=request.method,
            route=getattr(route, "path", "unmatched"),
            status=response.status_code,
            duration=time.perf_counter() - start,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", code=exc.code, error=exc.message, details=exc.details)
        else:
            logger.info("request_rejected", code=exc.code, status=exc.status_code, error=exc.message)
        return error_envelope(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "body",
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        error = ValidationError("Malformed request", details=fields)
        return error_envelope(error)

    app.include_router(users.router)
    app.include_router(tasks.router)
    app.include_router(groups.router)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness check endpoint.

        Returns 200 if the service is running.
        """
        return JSONResponse(
            content={"status": "ok", "service": "taskboard-service", "version": __version__},
            status_code=200,
        )

    @app.get("/health/ready")
    async def readiness() -> JSONResponse:
        """Readiness check endpoint.

        Verifies the document store is reachable.
        """
        checks: dict[str, Any] = {"store": False}

        try:
            checks["store"] = await container.store.health_check()
        except Exception as e:
            logger.error("store_health_failed", error=str(e))

        ready = all(checks.values())
        return JSONResponse(
            content={
                "status": "ready" if ready else "not_ready",
                "store": container.store.backend_name,
                "checks": checks,
            },
            status_code=200 if ready else 503,
        )

    if settings.metrics_enabled:

        @app.get("/metrics")
        async def prometheus_metrics() -> Response:
            """Prometheus metrics in exposition format."""
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
