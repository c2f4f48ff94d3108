# Core infrastructure
from learnflow.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_organization_id,
    get_request_id,
    get_user_id,
    set_organization_id,
    set_request_id,
    set_user_id,
)
from learnflow.core.errors import (
    BadRequestError,
    ConflictError,
    EngineError,
    ForbiddenError,
    NotFoundError,
)
from learnflow.core.logging import configure_structlog, get_logger
from learnflow.core.middleware import RequestContextMiddleware, set_user_context


__all__ = [
    "BadRequestError",
    "ConflictError",
    "EngineError",
    "ForbiddenError",
    "NotFoundError",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_organization_id",
    "get_request_id",
    "get_user_id",
    "set_organization_id",
    "set_request_id",
    "set_user_context",
    "set_user_id",
]
