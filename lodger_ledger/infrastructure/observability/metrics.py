"""Prometheus metrics for commands, ledger movements and collaborator calls"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Command metrics
command_counter = Counter(
    "lodger_command_total",
    "Mutating tenancy commands",
    ["command", "outcome"],  # outcome: ok | domain error code
)

command_latency_histogram = Histogram(
    "lodger_command_duration_seconds",
    "Time spent inside the per-tenancy lock",
    ["command"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Ledger metrics
payment_confirmed_amount = Counter(
    "lodger_payment_confirmed_pounds_total",
    "Rent confirmed received by landlords, in pounds",
)

deduction_counter = Counter(
    "lodger_deduction_total",
    "Deductions recorded against deposit and advance rent",
    ["deduction_type"],
)

notice_counter = Counter(
    "lodger_notice_total",
    "Notices issued",
    ["kind"],  # standard_termination | breach | extension_offer
)

immediate_termination_counter = Counter(
    "lodger_immediate_termination_total",
    "Tenancies ended with a 0-day notice",
)

extension_auto_accepted_counter = Counter(
    "lodger_extension_auto_accepted_total",
    "Extension offers accepted by the response-deadline sweep",
)

integrity_violation_counter = Counter(
    "lodger_integrity_violation_total",
    "Tenancies put on integrity hold",
)

# Collaborator metrics
notify_latency_histogram = Histogram(
    "notifier_latency_seconds",
    "Notifier response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

document_latency_histogram = Histogram(
    "document_service_latency_seconds",
    "Document generator response time",
    ["kind"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

intent_failure_counter = Counter(
    "intent_dispatch_failures_total",
    "Side-effect intents that could not be delivered",
    ["intent"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_command(command: str, outcome: str = "ok") -> None:
    command_counter.labels(command=command, outcome=outcome).inc()


def record_confirmed_payment(amount: Decimal) -> None:
    """Track confirmed rent volume"""
    payment_confirmed_amount.inc(float(amount))
