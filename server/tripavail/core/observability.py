"""Observability setup for OpenTelemetry, Prometheus metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "tripavail-booking-holds"
SERVICE_VERSION = "1.0.0"

REGISTRY = CollectorRegistry()

HOLDS_CREATED = Counter(
    "booking_holds_created_total",
    "Pending holds admitted",
    ["booking_type"],
    registry=REGISTRY
)

HOLDS_REJECTED = Counter(
    "booking_holds_rejected_total",
    "Hold requests rejected at admission",
    ["booking_type", "reason"],
    registry=REGISTRY
)

HOLDS_EXPIRED = Counter(
    "booking_holds_expired_total",
    "Pending holds transitioned to expired by the sweeper",
    ["booking_type"],
    registry=REGISTRY
)

HOLDS_CONFIRMED = Counter(
    "booking_holds_confirmed_total",
    "Holds confirmed after payment",
    ["booking_type"],
    registry=REGISTRY
)

CONFIRMATIONS_ALREADY_FINALIZED = Counter(
    "booking_confirmations_already_finalized_total",
    "Confirmation attempts that found the hold already finalized",
    ["booking_type"],
    registry=REGISTRY
)

WEBHOOK_EVENTS = Counter(
    "payment_webhook_events_total",
    "Payment webhook deliveries by processing status",
    ["event_type", "status"],
    registry=REGISTRY
)

SWEEP_DURATION = Histogram(
    "booking_hold_sweep_duration_seconds",
    "Duration of one expiry sweep",
    registry=REGISTRY
)


def setup_structured_logging() -> None:
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing, exporting over OTLP when an endpoint is configured."""
    provider = TracerProvider(resource=_resource())
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics export when an endpoint is configured."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))
    return metrics.get_meter(__name__)


def instrument_fastapi(app) -> None:
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine) -> None:
    """Instrument the async engine's sync core with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for booking-hold business metrics."""

    @staticmethod
    def record_hold_created(booking_type: str):
        HOLDS_CREATED.labels(booking_type=booking_type).inc()

    @staticmethod
    def record_hold_rejected(booking_type: str, reason: str):
        HOLDS_REJECTED.labels(booking_type=booking_type, reason=reason).inc()

    @staticmethod
    def record_holds_expired(booking_type: str, count: int):
        if count:
            HOLDS_EXPIRED.labels(booking_type=booking_type).inc(count)

    @staticmethod
    def record_hold_confirmed(booking_type: str):
        HOLDS_CONFIRMED.labels(booking_type=booking_type).inc()

    @staticmethod
    def record_confirmation_already_finalized(booking_type: str):
        CONFIRMATIONS_ALREADY_FINALIZED.labels(booking_type=booking_type).inc()

    @staticmethod
    def record_webhook_event(event_type: str, status: str):
        WEBHOOK_EVENTS.labels(event_type=event_type, status=status).inc()

    @staticmethod
    def observe_sweep_duration(seconds: float):
        SWEEP_DURATION.observe(seconds)


def get_prometheus_metrics() -> bytes:
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
