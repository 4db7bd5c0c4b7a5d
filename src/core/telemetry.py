"""OpenTelemetry setup and configuration"""

from typing import Optional

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor

from .config import get_settings


def setup_telemetry():
    """Initialize OpenTelemetry exporters and client instrumentation"""
    settings = get_settings()

    if not settings.telemetry.enabled:
        return

    resource = Resource.create({
        "service.name": settings.telemetry.service_name,
        "service.version": settings.app_version,
        "deployment.environment": settings.environment,
    })

    tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(tracer_provider)

    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.telemetry.otlp_endpoint,
        insecure=True
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    metric_reader = PeriodicExportingMetricReader(
        exporter=OTLPMetricExporter(
            endpoint=settings.telemetry.otlp_endpoint,
            insecure=True
        ),
        export_interval_millis=10000
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    # Provider transports go through httpx; the cache may sit on redis
    HTTPXClientInstrumentor().instrument()
    RedisInstrumentor().instrument()


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance"""
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    """Get a meter instance"""
    return metrics.get_meter(name)


class GenerationMetrics:
    """Counters describing orchestration behaviour"""

    def __init__(self, meter: Optional[metrics.Meter] = None):
        meter = meter or get_meter("bestseller.generation")
        self.provider_attempts = meter.create_counter(
            "generation.provider.attempts",
            description="Provider calls issued, labelled by outcome"
        )
        self.fallbacks = meter.create_counter(
            "generation.fallbacks",
            description="Times auto mode moved on to the next provider"
        )
        self.cache_lookups = meter.create_counter(
            "generation.cache.lookups",
            description="Response cache lookups, labelled hit or miss"
        )

    def record_attempt(self, provider: str, outcome: str):
        self.provider_attempts.add(1, {"provider": provider, "outcome": outcome})

    def record_fallback(self, provider: str):
        self.fallbacks.add(1, {"from_provider": provider})

    def record_cache_lookup(self, namespace: str, hit: bool):
        self.cache_lookups.add(1, {"namespace": namespace, "result": "hit" if hit else "miss"})

