"""JSON helpers limited to what a PostgreSQL ``jsonb`` column can store."""
from __future__ import annotations

import json
from typing import Any

NUL = "\x00"
NUL_REPLACEMENT = "\ufffd"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def loads_strict(raw: str | bytes) -> Any:
    """``json.loads`` without the ``NaN``/``Infinity`` extensions."""
    return json.loads(raw, parse_constant=_reject_constant)


def contains_nul(value: Any) -> bool:
    if isinstance(value, str):
        return NUL in value
    if isinstance(value, dict):
        return any(contains_nul(k) or contains_nul(v) for k, v in value.items())
    if isinstance(value, list):
        return any(contains_nul(item) for item in value)
    return False


def scrub_nul(value: Any) -> Any:
    """Replace NUL characters in every string, keys included."""
    if isinstance(value, str):
        return value.replace(NUL, NUL_REPLACEMENT)
    if isinstance(value, dict):
        return {scrub_nul(k): scrub_nul(v) for k, v in value.items()}
    if isinstance(value, list):
        return [scrub_nul(item) for item in value]
    return value
