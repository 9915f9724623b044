"""Header and body transformation applied before dispatch."""
from __future__ import annotations

import copy
from typing import Any, Mapping

import structlog

from webhook_service.core.exceptions import JsonPathError
from webhook_service.domain.models import TransformRuleSet
from webhook_service.services.jsonpath import evaluate

logger = structlog.get_logger(__name__)


def merge_headers(base: Mapping[str, str], overrides: Mapping[str, str]) -> dict[str, str]:
    """Overlay ``overrides`` onto ``base`` comparing names case-insensitively.

    The spelling of the overriding name wins.
    """
    merged = dict(base)
    for name, value in overrides.items():
        for existing in [key for key in merged if key.lower() == name.lower()]:
            del merged[existing]
        merged[name] = value
    return merged


def _map_body(rules: TransformRuleSet, body: Any) -> dict[str, Any]:
    mapped: dict[str, Any] = {}
    for mapping in rules.body_mappings:
        try:
            matches = evaluate(mapping.source, body)
        except JsonPathError as exc:
            logger.debug(
                "Skipping body mapping with invalid path",
                source=mapping.source,
                target=mapping.target,
                error=str(exc),
            )
            continue
        mapped[mapping.target] = matches[0] if len(matches) == 1 else matches
    return copy.deepcopy(mapped)


def apply_transform(
    rules: TransformRuleSet | None,
    headers: Mapping[str, str],
    body: Any,
) -> tuple[dict[str, str], Any]:
    """Return transformed ``(headers, body)``; inputs are never mutated."""
    if rules is None:
        return dict(headers), copy.deepcopy(body)

    out_headers = merge_headers(headers, rules.header_rewrites)
    out_headers = merge_headers(out_headers, rules.additional_headers)

    if rules.body_mappings:
        return out_headers, _map_body(rules, body)
    return out_headers, copy.deepcopy(body)
