from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    user_id: str | None = None


_EMPTY = RequestContext()
_CURRENT: ContextVar[RequestContext] = ContextVar("canteen_request_context", default=_EMPTY)


def set_request_context(*, request_id: str | None = None, user_id: str | None = None) -> None:
    changes = {}
    if request_id is not None:
        changes["request_id"] = request_id
    if user_id is not None:
        changes["user_id"] = user_id
    if changes:
        _CURRENT.set(replace(_CURRENT.get(), **changes))


def current_request_context() -> RequestContext:
    return _CURRENT.get()


def get_request_id() -> str | None:
    return _CURRENT.get().request_id


def get_user_id() -> str | None:
    return _CURRENT.get().user_id


def clear_request_context() -> None:
    _CURRENT.set(_EMPTY)
