"""Pull a display name and message out of loosely shaped event payloads.

Webhook senders disagree on field names and casing (``nickname`` vs
``displayName``, ``comment`` vs ``msg``) and sometimes nest the useful part
under ``data`` or ``payload``. Lookups here are case-insensitive and
descend into those two wrappers.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..schemas.events import EventMessage

_NESTED_KEYS = ("data", "payload")

USER_IDENTIFIER_KEYS: Tuple[str, ...] = ("id",)
UNIQUE_ID_KEYS: Tuple[str, ...] = ("uniqueId",)
USER_DISPLAY_KEYS: Tuple[str, ...] = ("displayName", "nickname", "username")
MESSAGE_CONTENT_KEYS: Tuple[str, ...] = ("message", "content", "comment", "text", "msg")

PREFERRED_DISPLAY_FIELDS: Tuple[str, ...] = (
    "display_name",
    "nickname",
    "username",
    "unique_id",
)
PREFERRED_MESSAGE_FIELDS: Tuple[str, ...] = (
    "message",
    "content",
    "comment",
    "text",
    "msg",
)


def _lowercase_keys(value: Mapping[Any, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, item in value.items():
        if isinstance(item, Mapping):
            item = _lowercase_keys(item)
        normalized[str(key).lower()] = item
    return normalized


def _search(node: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        found = node.get(key)
        if found is not None:
            return found
    for nested in _NESTED_KEYS:
        child = node.get(nested)
        if isinstance(child, Mapping):
            found = _search(child, keys)
            if found is not None:
                return found
    return None


def extract_value(payload: Any, keys: Sequence[str]) -> Any:
    """Return the first non-null value stored under any of ``keys``.

    Keys are tried in order at each level before descending into ``data``
    and then ``payload``.
    """
    if not isinstance(payload, Mapping):
        return None
    return _search(_lowercase_keys(payload), [key.lower() for key in keys])


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def process_event_payload(payload: Any) -> EventMessage:
    """Normalize a raw event into an :class:`EventMessage`."""
    display = _as_text(extract_value(payload, USER_DISPLAY_KEYS))
    content = _as_text(extract_value(payload, MESSAGE_CONTENT_KEYS))
    return EventMessage(
        id=_as_text(extract_value(payload, USER_IDENTIFIER_KEYS)),
        unique_id=_as_text(extract_value(payload, UNIQUE_ID_KEYS)),
        display_name=display,
        nickname=display,
        username=display,
        message=content,
        content=content,
        comment=content,
        text=content,
        msg=content,
    )


def _first_present(message: EventMessage, fields: Sequence[str]) -> Optional[str]:
    for field in fields:
        value = getattr(message, field)
        if value is not None:
            return value
    return None


def select_display_text(message: EventMessage) -> Tuple[Optional[str], Optional[str]]:
    """Pick ``(user, msg)`` for speech by field priority."""
    return (
        _first_present(message, PREFERRED_DISPLAY_FIELDS),
        _first_present(message, PREFERRED_MESSAGE_FIELDS),
    )


def event_name_of(payload: Any) -> Optional[str]:
    name = extract_value(payload, ("eventName",))
    return name if isinstance(name, str) else None


__all__ = [
    "event_name_of",
    "extract_value",
    "process_event_payload",
    "select_display_text",
]
