import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from marketplace.config import Settings

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("marketplace")


def setup_tracing(service_name: str = "marketplace"):
    if not Settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("OTLP endpoint not configured, tracing disabled")
        return

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(
        OTLPSpanExporter(endpoint=Settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
    )
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)
    logger.info("Tracing exported to %s", Settings.OTEL_EXPORTER_OTLP_ENDPOINT)
