"""Request-scoped canonical log line.

A dict held in a contextvar accumulates fields for the current request
(route, status, authenticated user, entity touched). RequestContextMiddleware
creates it at request start and emits it once as ``request.completed``.

Usage:
    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(entity_kind="locality", entity_id=locality.id)
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current event, or an empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Set fields on the current event.

    No-op outside a request (CLI, tests without middleware).
    """
    try:
        event = _wide_event.get()
    except LookupError:
        return
    event.update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set({})
