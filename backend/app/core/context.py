"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar

from fastapi import Request

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[str | None] = ContextVar("user_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_user_id() -> str | None:
    """Return the user the current request acts on, once a route has bound it."""
    return user_id_ctx_var.get()


def bind_user_id(request: Request, user_id: object) -> None:
    """Record the acting user for this request.

    Sync routes run on a worker thread with a copied context, so the id is also
    kept on ``request.state`` where the middleware and error handlers read it.
    """
    value = str(user_id) if user_id is not None else None
    request.state.user_id = value
    user_id_ctx_var.set(value)


def restore_user_id(request: Request) -> None:
    """Copy the user id a route bound on ``request.state`` into this context."""
    user_id_ctx_var.set(getattr(request.state, "user_id", None))
