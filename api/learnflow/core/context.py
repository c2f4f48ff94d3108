"""Request context management using contextvars.

Every request carries a request ID and, once the bearer token is decoded,
the caller's user and organization. Log entries pick these up without the
values being threaded through service signatures.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
organization_id_var: ContextVar[str | None] = ContextVar(
    "organization_id", default=None
)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

_VARS: dict[str, ContextVar] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "organization_id": organization_id_var,
    "trace_id": trace_id_var,
}


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if absent."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_organization_id() -> str | None:
    return organization_id_var.get()


def set_organization_id(organization_id: str | UUID | None) -> None:
    organization_id_var.set(
        str(organization_id) if organization_id is not None else None
    )


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get the populated context variables as a dictionary.

    Returns:
        Mapping with whichever of request_id, user_id, organization_id and
        trace_id are set.
    """
    return {name: var.get() for name, var in _VARS.items() if var.get()}


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)
    organization_id_var.set(None)
    trace_id_var.set(None)


class RequestContext:
    """Context manager for a request scope outside the HTTP middleware.

    Usage:
        with RequestContext(user_id=trainee_id, organization_id=org_id):
            log.info("recalculating")  # includes request_id, user_id, org
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | UUID | None = None,
        organization_id: str | UUID | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.values: dict[str, str | None] = {
            "request_id": request_id or generate_request_id(),
            "user_id": str(user_id) if user_id is not None else None,
            "organization_id": (
                str(organization_id) if organization_id is not None else None
            ),
            "trace_id": trace_id,
        }
        self._tokens: dict[str, Token] = {}

    def __enter__(self) -> "RequestContext":
        for name, value in self.values.items():
            if value is not None:
                self._tokens[name] = _VARS[name].set(value)
        return self

    def __exit__(self, *_: object) -> None:
        for name, token in self._tokens.items():
            _VARS[name].reset(token)
        self._tokens.clear()
