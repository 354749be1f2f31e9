import logging

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry import trace as trace_api
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from mealplanner.config import Settings

logger = logging.getLogger(__name__)


def setup_telemetry(app, settings: Settings):
    session = None
    if settings.launch_phoenix:
        # Local trace viewer; only imported when asked for
        import phoenix as px
        session = px.launch_app()
        logger.info("Phoenix is running on: %s", session.url)

    resource = Resource(attributes={
        "service.name": "mealplanner-api",
    })

    trace_provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
    trace_provider.add_span_processor(BatchSpanProcessor(exporter))
    trace_api.set_tracer_provider(trace_provider)

    FastAPIInstrumentor().instrument_app(app, excluded_urls="healthz,readyz")
    logger.info("Tracing enabled, exporting to %s", settings.otlp_endpoint)
    return session
