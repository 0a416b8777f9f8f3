"""OpenTelemetry tracing for generation calls."""
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.openai import OpenAIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from citeqa.utils.logger import logger


def initialize_tracing(
    service_name: str = "citeqa",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    tracing_enabled: bool = True,
) -> Optional[TracerProvider]:
    """
    Set up a tracer provider and instrument the OpenAI SDK.

    Args:
        service_name: Name reported on every span
        service_version: Version reported on every span
        otlp_endpoint: OTLP HTTP endpoint (e.g. http://localhost:4318/v1/traces);
                       console exporter when None
        tracing_enabled: Skip setup entirely when False

    Returns:
        The TracerProvider, or None when tracing is off or setup failed
    """
    if not tracing_enabled:
        logger.info("Tracing is disabled")
        return None

    try:
        resource = Resource.create({"service.name": service_name, "service.version": service_version})
        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        if otlp_endpoint:
            exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
            logger.info(f"Tracing initialized with OTLP exporter: {otlp_endpoint}")
        else:
            exporter = ConsoleSpanExporter()
            logger.info("Tracing initialized with console exporter")

        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
        OpenAIInstrumentor().instrument()
        return tracer_provider

    except Exception as e:
        logger.error(f"Failed to initialize tracing: {str(e)}", exc_info=True)
        return None


def shutdown_tracing(tracer_provider: Optional[TracerProvider]) -> None:
    if tracer_provider:
        try:
            tracer_provider.shutdown()
            logger.info("Tracing shutdown completed")
        except Exception as e:
            logger.warning(f"Error during tracing shutdown: {str(e)}")
