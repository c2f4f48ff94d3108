"""Engine error hierarchy.

Every validation, authorization and uniqueness failure raised by a service
is an ``EngineError``. The application installs one exception handler that
turns these into the error envelope; nothing is retried.
"""

from fastapi import status


class EngineError(Exception):
    """Base engine error."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = "engine_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(EngineError):
    """Referenced record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(EngineError):
    """Role, organization or ownership check failed."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", code: str = "forbidden"):
        super().__init__(message, code)


class BadRequestError(EngineError):
    """Structurally invalid input or a rule violation by the caller."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Bad request", code: str = "bad_request"):
        super().__init__(message, code)


class ConflictError(EngineError):
    """Uniqueness or capacity violation."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)
