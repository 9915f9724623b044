"""OpenTelemetry instrumentation for webhook-service.

Enabled only when ``otel_exporter_endpoint`` is configured. Installs an OTLP
HTTP exporter and aiohttp server instrumentation; :func:`get_tracer` serves
manual spans (the router wraps every delivery in one) and degrades to a no-op
tracer when tracing is off.
"""
from __future__ import annotations

import structlog
from aiohttp import web
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.aiohttp_server import AioHttpServerInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from webhook_service.settings import settings

logger = structlog.get_logger(__name__)

_provider: TracerProvider | None = None


def setup_otel(app: web.Application) -> None:
    global _provider

    endpoint = settings.otel_exporter_endpoint
    if not endpoint:
        logger.info("otel_exporter_endpoint not set, OpenTelemetry tracing disabled")
        return

    _provider = TracerProvider(resource=Resource.create({SERVICE_NAME: settings.app_name}))
    base = str(endpoint).rstrip("/")
    _provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{base}/v1/traces")))
    trace.set_tracer_provider(_provider)

    AioHttpServerInstrumentor().instrument(server=app)
    app.on_cleanup.append(shutdown_otel)

    logger.info("OpenTelemetry tracing enabled", endpoint=base, service=settings.app_name)


async def shutdown_otel(_app: web.Application) -> None:
    """Flush pending spans on application shutdown."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        logger.info("OpenTelemetry tracer provider shut down")
        _provider = None


def get_tracer(name: str = __name__) -> trace.Tracer:
    return trace.get_tracer(name)
