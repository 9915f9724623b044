"""Minimal JSONPath evaluator for body mappings.

Supported syntax::

    $                   root
    .name  ['name']     child member (``["name"]`` and unions ``['a','b']`` too)
    [0]  [-1]  [0,2]    array index / index union
    [1:3]  [::2]        array slice
    .*  [*]             wildcard over object values or array items
    ..name  ..*  ..[0]  recursive descent

Filter and script expressions are not supported and raise ``JsonPathError``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterator, Union

from webhook_service.core.exceptions import JsonPathError

_NAME_RE = re.compile(r"[^.\[\]\s'\"*]+")
_QUOTES = ("'", '"')


@dataclass(frozen=True)
class _Child:
    names: tuple[str, ...]


@dataclass(frozen=True)
class _Index:
    indexes: tuple[int, ...]


@dataclass(frozen=True)
class _Slice:
    start: int | None
    stop: int | None
    step: int | None


@dataclass(frozen=True)
class _Wildcard:
    pass


@dataclass(frozen=True)
class _Descend:
    selector: "Selector"


Selector = Union[_Child, _Index, _Slice, _Wildcard]
Segment = Union[Selector, _Descend]


def _find_closing_bracket(text: str, pos: int) -> int:
    quote: str | None = None
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "]":
            return i
        i += 1
    raise JsonPathError(f"Unclosed '[' at position {pos}")


def _split_union(inner: str) -> list[str]:
    parts: list[str] = []
    quote: str | None = None
    current: list[str] = []
    escaped = False
    for ch in inner:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if quote and ch == "\\":
            current.append(ch)
            escaped = True
            continue
        if quote:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == ",":
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _unquote(token: str) -> str:
    if len(token) < 2 or token[0] not in _QUOTES or token[-1] != token[0]:
        raise JsonPathError(f"Expected quoted member name, got {token!r}")
    body = token[1:-1]
    return re.sub(r"\\(.)", r"\1", body)


def _parse_int(token: str) -> int:
    try:
        return int(token)
    except ValueError as exc:
        raise JsonPathError(f"Invalid array index {token!r}") from exc


def _parse_selector(inner: str) -> Selector:
    if not inner:
        raise JsonPathError("Empty bracket selector")
    if inner.startswith("?") or inner.startswith("("):
        raise JsonPathError("Filter and script expressions are not supported")
    if inner == "*":
        return _Wildcard()
    if inner[0] in _QUOTES:
        return _Child(tuple(_unquote(part) for part in _split_union(inner)))
    if ":" in inner:
        bounds = [part.strip() for part in inner.split(":")]
        if len(bounds) > 3:
            raise JsonPathError(f"Invalid slice {inner!r}")
        values = [_parse_int(b) if b else None for b in bounds]
        values += [None] * (3 - len(values))
        if values[2] == 0:
            raise JsonPathError("Slice step cannot be zero")
        return _Slice(values[0], values[1], values[2])
    return _Index(tuple(_parse_int(part) for part in _split_union(inner)))


def _parse_member(text: str, pos: int) -> tuple[Selector, int]:
    if pos < len(text) and text[pos] == "*":
        return _Wildcard(), pos + 1
    match = _NAME_RE.match(text, pos)
    if match is None:
        raise JsonPathError(f"Expected member name at position {pos}")
    return _Child((match.group(0),)), match.end()


def _parse_bracket(text: str, pos: int) -> tuple[Selector, int]:
    end = _find_closing_bracket(text, pos)
    return _parse_selector(text[pos + 1 : end].strip()), end + 1


@lru_cache(maxsize=512)
def parse(expression: str) -> tuple[Segment, ...]:
    """Compile ``expression`` into a tuple of segments."""
    if not isinstance(expression, str) or not expression.strip():
        raise JsonPathError("Empty path expression")
    text = expression.strip()
    if not text.startswith("$"):
        raise JsonPathError("Path expression must start with '$'")

    segments: list[Segment] = []
    pos = 1
    while pos < len(text):
        if text.startswith("..", pos):
            pos += 2
            if pos < len(text) and text[pos] == "[":
                selector, pos = _parse_bracket(text, pos)
            else:
                selector, pos = _parse_member(text, pos)
            segments.append(_Descend(selector))
        elif text[pos] == ".":
            selector, pos = _parse_member(text, pos + 1)
            segments.append(selector)
        elif text[pos] == "[":
            selector, pos = _parse_bracket(text, pos)
            segments.append(selector)
        else:
            raise JsonPathError(f"Unexpected character {text[pos]!r} at position {pos}")
    return tuple(segments)


def _children(node: Any) -> list[Any]:
    if isinstance(node, dict):
        return list(node.values())
    if isinstance(node, list):
        return list(node)
    return []


def _descendants(node: Any) -> Iterator[Any]:
    yield node
    for child in _children(node):
        yield from _descendants(child)


def _select(selector: Selector, node: Any) -> Iterator[Any]:
    if isinstance(selector, _Child):
        for name in selector.names:
            if isinstance(node, dict):
                if name in node:
                    yield node[name]
            elif isinstance(node, list) and name.lstrip("-").isdigit():
                index = int(name)
                if -len(node) <= index < len(node):
                    yield node[index]
    elif isinstance(selector, _Index):
        if isinstance(node, list):
            for index in selector.indexes:
                if -len(node) <= index < len(node):
                    yield node[index]
    elif isinstance(selector, _Slice):
        if isinstance(node, list):
            yield from node[selector.start : selector.stop : selector.step]
    elif isinstance(selector, _Wildcard):
        yield from _children(node)


def evaluate(expression: str, document: Any) -> list[Any]:
    """Return every value in ``document`` matched by ``expression``."""
    nodes = [document]
    for segment in parse(expression):
        if isinstance(segment, _Descend):
            nodes = [
                match
                for node in nodes
                for descendant in _descendants(node)
                for match in _select(segment.selector, descendant)
            ]
        else:
            nodes = [match for node in nodes for match in _select(segment, node)]
    return nodes
