"""Error Classifier — decides whether an upstream error is a transient capacity error.

Invariants:
    - classify() is total: any input (None, dicts, exceptions, objects whose
      attributes raise) yields an ErrorClass, never an exception
    - Rules run in fixed priority order, first match wins:
        1. top-level status/status_code in {429, 503, 529}
        2. response.status / response.status_code == 429
        3. nested error (error or body["error"]): code 429, status
           RESOURCE_EXHAUSTED, or type rate_limit_error / overloaded_error
        4. message contains "429", "403", "RESOURCE_EXHAUSTED" or "quota" (any case)
        5. otherwise FATAL
    - Pure: no IO, no logging, no state

Design Decisions:
    - Duck-typed field access (attribute OR mapping key): SDK exceptions,
      httpx responses and plain dicts go through one decision table
    - 529 sits beside 503: it is Anthropic's "overloaded" status
    - "403" in the message counts as capacity: some providers deny exhausted
      quota with 403 instead of 429
"""

from collections.abc import Mapping
from typing import Any

from keyrelay.core.domain_types import ErrorClass

RATE_LIMIT_STATUS = 429
TRANSIENT_STATUSES = frozenset({RATE_LIMIT_STATUS, 503, 529})
RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"

_TRANSIENT_ERROR_TYPES = frozenset({"rate_limit_error", "overloaded_error"})
_MESSAGE_MARKERS = ("429", "403", RESOURCE_EXHAUSTED)


def classify(error: Any) -> ErrorClass:
    """Classify an arbitrary error value as TRANSIENT or FATAL."""
    try:
        if _is_transient(error):
            return ErrorClass.TRANSIENT
    except Exception:
        pass  # nosec B110 — malformed error shapes classify as fatal
    return ErrorClass.FATAL


def is_transient(error: Any) -> bool:
    return classify(error) is ErrorClass.TRANSIENT


def _is_transient(error: Any) -> bool:
    if error is None:
        return False
    if _status_of(error) in TRANSIENT_STATUSES:
        return True
    if _status_of(_field(error, "response")) == RATE_LIMIT_STATUS:
        return True
    if _nested_error_is_capacity(_nested_error(error)):
        return True
    return _message_is_capacity(_message_of(error))


# ─── Field access ────────────────────────────────────────────────

def _field(obj: Any, name: str) -> Any:
    """Read name from a mapping or an object; None when absent."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _status_of(obj: Any) -> int | None:
    status = _as_int(_field(obj, "status"))
    if status is None:
        status = _as_int(_field(obj, "status_code"))
    return status


def _nested_error(error: Any) -> Any:
    nested = _field(error, "error")
    if nested is None:
        nested = _field(_field(error, "body"), "error")
    return nested


def _nested_error_is_capacity(nested: Any) -> bool:
    if nested is None or isinstance(nested, str):
        return False
    if _as_int(_field(nested, "code")) == RATE_LIMIT_STATUS:
        return True
    if _field(nested, "status") == RESOURCE_EXHAUSTED:
        return True
    error_type = _field(nested, "type")
    return isinstance(error_type, str) and error_type in _TRANSIENT_ERROR_TYPES


def _message_of(error: Any) -> str | None:
    message = _field(error, "message")
    if isinstance(message, str):
        return message
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    return None


def _message_is_capacity(message: str | None) -> bool:
    if not message:
        return False
    if any(marker in message for marker in _MESSAGE_MARKERS):
        return True
    return "quota" in message.lower()
