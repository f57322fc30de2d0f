"""OpenTelemetry spans for indexing, retrieval and question answering."""
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.openai import OpenAIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

from docuquery.utils.logger import logger

TRACER_NAME = "docu_query"

# Proxy tracer: spans go to whichever provider is installed at call time
tracer = trace.get_tracer(TRACER_NAME)


def build_exporter(otlp_endpoint: Optional[str]) -> SpanExporter:
    """OTLP over HTTP when an endpoint is configured, console output otherwise."""
    if otlp_endpoint:
        return OTLPSpanExporter(endpoint=otlp_endpoint)
    return ConsoleSpanExporter()


def initialize_tracing(settings, service_version: str) -> Optional[TracerProvider]:
    """
    Install a tracer provider for the service spans and the OpenAI SDK calls.

    Args:
        settings: Application settings (``tracing_enabled``, ``otlp_endpoint``)
        service_version: Reported as ``service.version``

    Returns:
        The installed TracerProvider, or None when tracing is disabled or failed to start
    """
    if not settings.tracing_enabled:
        logger.info("Tracing is disabled")
        return None

    try:
        tracer_provider = TracerProvider(
            resource=Resource.create({"service.name": "docu-query", "service.version": service_version})
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(build_exporter(settings.otlp_endpoint)))
        trace.set_tracer_provider(tracer_provider)

        # Embedding and completion requests both go through the OpenAI SDK
        OpenAIInstrumentor().instrument()

        logger.info(f"Tracing initialized, exporting to {settings.otlp_endpoint or 'console'}")
        return tracer_provider
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {str(e)}", exc_info=True)
        return None


def shutdown_tracing(tracer_provider: Optional[TracerProvider]) -> None:
    """Flush pending spans and stop the provider."""
    if tracer_provider is None:
        return
    try:
        tracer_provider.shutdown()
        logger.info("Tracing shutdown completed")
    except Exception as e:
        logger.warning(f"Error during tracing shutdown: {str(e)}")
