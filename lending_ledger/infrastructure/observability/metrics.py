"""Prometheus metrics for monitoring loan origination, repayments, and storage health"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Origination metrics
loans_created_counter = Counter(
    "lending_loans_created_total",
    "Total loans created",
)

loan_principal_histogram = Histogram(
    "lending_loan_principal",
    "Principal amount of created loans",
    buckets=[1_000, 10_000, 50_000, 100_000, 500_000, 1_000_000, 5_000_000],
)

# Repayment metrics
payments_counter = Counter(
    "lending_payments_total",
    "Payments applied to loans",
    ["payment_type", "status"],  # EMI | LUMP_SUM, loan status after payment
)

loans_paid_off_counter = Counter(
    "lending_loans_paid_off_total",
    "Loans that reached PAID_OFF",
)

# Storage health
storage_failures_counter = Counter(
    "lending_storage_failures_total",
    "Transactions rolled back due to storage errors",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_created(principal: Decimal) -> None:
    loans_created_counter.inc()
    loan_principal_histogram.observe(float(principal))


def record_payment(payment_type: str, status: str) -> None:
    """Record payment metrics; a PAID_OFF outcome also counts as a payoff"""
    payments_counter.labels(payment_type=payment_type, status=status).inc()
    if status == "PAID_OFF":
        loans_paid_off_counter.inc()
