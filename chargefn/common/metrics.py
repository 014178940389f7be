"""Prometheus metric definitions for the charge functions."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


function_invocations_total = Counter(
    "function_invocations_total",
    "Total handler invocations",
    ["service", "function", "outcome"],
)
function_duration_seconds = Histogram(
    "function_duration_seconds",
    "Handler duration seconds",
    ["service", "function"],
)
duplicate_events_skipped_total = Counter(
    "duplicate_events_skipped_total",
    "Charge record writes skipped because the record was already finalized",
    ["service", "reason"],
)
charges_succeeded_total = Counter("charges_succeeded_total", "Charges accepted by the gateway", ["service"])
charges_failed_total = Counter(
    "charges_failed_total",
    "Charges that ended with an error field",
    ["service", "error_type"],
)
errors_reported_total = Counter("errors_reported_total", "Error events written to the log sink", ["service"])


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
