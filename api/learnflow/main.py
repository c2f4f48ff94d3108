"""LearnFlow API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnflow.assessments.router import router as assessments_router
from learnflow.assessments.service import AssessmentService
from learnflow.assignments.router import router as assignments_router
from learnflow.assignments.service import AssignmentService
from learnflow.catalog.store import CatalogStore
from learnflow.config import get_settings
from learnflow.core.context import get_request_id
from learnflow.core.database import init_async_cassandra, shutdown_async_cassandra
from learnflow.core.errors import EngineError
from learnflow.core.logging import configure_structlog, get_logger
from learnflow.core.middleware import RequestContextMiddleware
from learnflow.enrollments.router import router as enrollments_router
from learnflow.enrollments.service import EnrollmentService
from learnflow.health import router as health_router
from learnflow.prerequisites.router import router as prerequisites_router
from learnflow.prerequisites.service import PrerequisiteResolver
from learnflow.progress.aggregator import ProgressAggregator
from learnflow.progress.router import router as progress_router
from learnflow.progress.service import ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def install_services(state: Any, store: CatalogStore) -> None:
    """Build the engine services over one store and publish them on app state."""
    resolver = PrerequisiteResolver(store)
    aggregator = ProgressAggregator(store)
    enrollment_service = EnrollmentService(store, resolver, aggregator)

    state.store = store
    state.prerequisite_resolver = resolver
    state.progress_aggregator = aggregator
    state.enrollment_service = enrollment_service
    state.progress_service = ProgressService(store, aggregator, enrollment_service)
    state.assessment_service = AssessmentService(store, enrollment_service)
    state.assignment_service = AssignmentService(store, enrollment_service)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        install_services(
            app.state, CatalogStore(session=session, keyspace=settings.cassandra_keyspace)
        )
        logger.info("engine_services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course progress and assessment engine",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> ORJSONResponse:
        """Map engine errors to the error envelope."""
        logger.info(
            "engine_error",
            status_code=exc.status_code,
            code=exc.code,
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": exc.message,
                "code": exc.code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "code": "http_error",
                "request_id": _get_request_id_safe(request),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field-level details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Validation error",
                "code": "bad_request",
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details go to the log, never to the client."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "An unexpected error occurred. Please try again later.",
                "code": "internal_error",
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(prerequisites_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(assessments_router)
    app.include_router(assignments_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnFlow API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    uvicorn.run(
        "learnflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_config=None,
    )
