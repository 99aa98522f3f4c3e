"""Helpers for safe diagnostic logging.

Scouting payloads are untrusted and can be large; output-collaborator
requests carry bearer tokens.  This module keeps both out of logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset({"authorization"})


def describe_payload(payload: bytes | None, *, preview: int = 64) -> str:
    """One-line description of a raw payload: size plus a short preview."""
    if payload is None:
        return "<no payload>"
    head = payload[:preview].decode("utf-8", errors="replace")
    suffix = "…" if len(payload) > preview else ""
    return f"<bytes:{len(payload)}b {head!r}{suffix}>"


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return describe_payload(value)

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
