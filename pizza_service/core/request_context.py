"""Request context helpers for logging."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def bind_request_id(request_id: str) -> Token:
    """Bind a request id to the current context and return the reset token."""
    return _request_id.set(request_id)


def release_request_id(token: Token) -> None:
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()


@contextmanager
def request_context(request_id: str) -> Iterator[None]:
    token = bind_request_id(request_id)
    try:
        yield
    finally:
        release_request_id(token)
