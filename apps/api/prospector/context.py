from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
caller_id_var: ContextVar[str | None] = ContextVar("caller_id", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def bind_caller(caller_id: str | None) -> Iterator[None]:
    """Tag every log record emitted inside the block with the calling principal."""
    token = caller_id_var.set(caller_id)
    try:
        yield
    finally:
        caller_id_var.reset(token)


def get_log_context() -> dict[str, str | None]:
    return {"correlation_id": correlation_id_var.get(), "caller_id": caller_id_var.get()}
