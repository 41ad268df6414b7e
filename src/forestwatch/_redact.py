"""Helpers for safe debug logging.

Feed URLs and device payloads can carry database secrets or ID tokens.
Everything logged at DEBUG that came off the wire goes through
:func:`redact_for_log` first.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "auth",
        "password",
        "secret",
        "token",
        "idtoken",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
    }
)

_MAX_DEPTH = 20
_REDACTED = "<redacted>"
_AUTH_QUERY_RE = re.compile(r"([?&](?:auth|access_token)=)[^&]*")


def redact_url(url: str) -> str:
    """Mask ``auth=`` / ``access_token=`` query values in *url*."""
    return _AUTH_QUERY_RE.sub(rf"\1{_REDACTED}", url)


def _redact_text(text: str, max_string: int) -> str:
    text = redact_url(text)
    if len(text) <= max_string:
        return text
    return f"{text[:max_string]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with secrets masked and long strings cut.

    Mapping keys named like credentials are replaced wholesale; strings
    have auth query parameters masked. Scalars pass through unchanged.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _redact_text(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    child_depth = _depth + 1
    if isinstance(value, Mapping):
        return {
            str(key): (
                _REDACTED
                if str(key).lower() in _SENSITIVE_VALUE_KEYS
                else redact_for_log(item, max_string=max_string, _depth=child_depth)
            )
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=child_depth) for item in value]

    return repr(value)
