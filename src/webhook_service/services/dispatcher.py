"""Outbound delivery of transformed events."""
from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Mapping

import structlog
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout
from multidict import CIMultiDict

from webhook_service.core.exceptions import ConfigurationError, TransportError
from webhook_service.core.payloads import loads_strict, scrub_nul
from webhook_service.domain.destinations import (
    AutomationEngine,
    Destination,
    ForwardUrl,
    InternalWorkflow,
)
from webhook_service.domain.models import RouteResult

logger = structlog.get_logger(__name__)

# Framing and hop-by-hop headers describe the inbound connection, not the payload.
_NON_FORWARDABLE_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "content-encoding",
        "transfer-encoding",
        "connection",
        "keep-alive",
        "proxy-connection",
        "te",
        "trailer",
        "upgrade",
        "expect",
        "accept-encoding",
    }
)

INTERNAL_ACK = {"message": "Internal workflow triggered"}

DEFAULT_MAX_RESPONSE_BYTES = 64 * 1024


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def build_request_headers(headers: Mapping[str, str]) -> CIMultiDict[str]:
    request_headers: CIMultiDict[str] = CIMultiDict({"Content-Type": "application/json"})
    for name, value in headers.items():
        if name.lower() in _NON_FORWARDABLE_HEADERS:
            continue
        request_headers[name] = value
    return request_headers


def _parse_response_body(raw: str) -> Any:
    try:
        return scrub_nul(loads_strict(raw))
    except ValueError:
        return scrub_nul(raw)


def create_client_session(timeout_seconds: float) -> ClientSession:
    return ClientSession(timeout=ClientTimeout(total=timeout_seconds))


class OutboundDispatcher:
    """Delivers one event to its destination and reports a RouteResult."""

    def __init__(
        self, session: ClientSession, max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES
    ):
        self._session = session
        self._max_response_bytes = max_response_bytes

    async def dispatch(
        self,
        destination: Destination,
        headers: Mapping[str, str],
        body: Any,
    ) -> RouteResult:
        started = time.monotonic()
        if isinstance(destination, (ForwardUrl, AutomationEngine)):
            try:
                result = await self._post(destination.url, headers, body)
            except TransportError as exc:
                result = RouteResult(success=False, error=str(exc))
        elif isinstance(destination, InternalWorkflow):
            result = RouteResult(success=True, status_code=200, response_body=dict(INTERNAL_ACK))
        else:
            raise ConfigurationError(f"Unsupported destination: {destination!r}")
        return result.model_copy(update={"duration_ms": elapsed_ms(started)})

    async def _post(self, url: str, headers: Mapping[str, str], body: Any) -> RouteResult:
        payload = json.dumps(body, ensure_ascii=False).encode("utf-8")
        try:
            async with self._session.post(
                url, data=payload, headers=build_request_headers(headers)
            ) as resp:
                content = await self._read_capped(resp)
                status = resp.status
        except (ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.info("Outbound delivery failed", url=url, error=str(exc), error_type=type(exc).__name__)
            raise TransportError(str(exc) or type(exc).__name__) from exc

        truncated = len(content) > self._max_response_bytes
        raw = content[: self._max_response_bytes].decode("utf-8", errors="replace")
        if truncated:
            logger.info(
                "Destination response truncated", url=url, limit=self._max_response_bytes
            )
        return RouteResult(
            success=200 <= status < 300,
            status_code=status,
            response_body=scrub_nul(raw) if truncated else _parse_response_body(raw),
            response_truncated=truncated,
        )

    async def _read_capped(self, resp: ClientResponse) -> bytes:
        """Read at most one byte past the limit so truncation can be detected."""
        limit = self._max_response_bytes + 1
        content = bytearray()
        while len(content) < limit:
            chunk = await resp.content.read(limit - len(content))
            if not chunk:
                break
            content += chunk
        return bytes(content)
