"""Telemetry setup for OpenTelemetry traces and metrics.

Hooks are short-lived processes, so export is opt-in via OTLP_ENABLED and
whatever was recorded is flushed explicitly before the process exits instead
of waiting for a periodic export that would never run.
"""

import logging
import os

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider

from provenance_enforcer.config import ProvenanceConfig

logger = logging.getLogger(__name__)

# A missing collector must not drown hook output in gRPC retry warnings
logging.getLogger("opentelemetry.exporter.otlp.proto.grpc").setLevel(logging.ERROR)

FLUSH_TIMEOUT_MILLIS = 5000

# Module-level metric instruments (set by create_metrics)
tasks_counter: metrics.Counter
validation_errors_counter: metrics.Counter
gate_checks_counter: metrics.Counter


def otlp_enabled() -> bool:
    return os.getenv("OTLP_ENABLED", "false").lower() == "true"


def _otlp_providers(endpoint: str, resource: Resource) -> tuple[TracerProvider, MeterProvider]:
    # Exporters pull in grpc, so they are only imported when export is on
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
        OTLPMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))
    )
    reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint))
    return tracer_provider, MeterProvider(resource=resource, metric_readers=[reader])


def setup_telemetry(config: ProvenanceConfig) -> tuple[trace.Tracer, metrics.Meter]:
    """Install tracer and meter providers for one hook invocation.

    With OTLP_ENABLED=true spans and metrics are exported to
    ``config.otlp_endpoint``; otherwise they stay in process.

    Returns:
        Tuple of (tracer, meter) named after ``config.service_name``
    """
    resource = Resource.create({SERVICE_NAME: config.service_name})
    if otlp_enabled() and config.otlp_endpoint:
        tracer_provider, meter_provider = _otlp_providers(config.otlp_endpoint, resource)
        logger.debug("Exporting telemetry to %s", config.otlp_endpoint)
    else:
        tracer_provider = TracerProvider(resource=resource)
        meter_provider = MeterProvider(resource=resource)

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)

    return trace.get_tracer(config.service_name), metrics.get_meter(config.service_name)


def flush_telemetry(timeout_millis: int = FLUSH_TIMEOUT_MILLIS) -> None:
    """Push pending spans and metrics out before the hook process exits.

    Providers that cannot flush (the API's no-op proxies before setup) are
    skipped.
    """
    for provider in (trace.get_tracer_provider(), metrics.get_meter_provider()):
        force_flush = getattr(provider, "force_flush", None)
        if force_flush is None:
            continue
        if not force_flush(timeout_millis=timeout_millis):
            logger.debug("Telemetry flush timed out for %s", type(provider).__name__)


def create_metrics(meter: metrics.Meter) -> None:
    """Create the provenance counters.

    - provenance_tasks_total{status}: task summaries written
    - provenance_validation_errors_total: errors found by validate
    - provenance_gate_checks_total{result}: check-pr outcomes
    """
    global tasks_counter, validation_errors_counter, gate_checks_counter

    tasks_counter = meter.create_counter(
        "provenance_tasks_total",
        description="Total task summaries written",
    )
    validation_errors_counter = meter.create_counter(
        "provenance_validation_errors_total",
        description="Total validation errors found in task summaries",
    )
    gate_checks_counter = meter.create_counter(
        "provenance_gate_checks_total",
        description="Total diff gate checks",
    )
