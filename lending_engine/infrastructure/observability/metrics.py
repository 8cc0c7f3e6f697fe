"""Prometheus metrics for monitoring eligibility rates, risk distribution, disbursements and webhooks"""

from prometheus_client import Counter, Histogram

# Evaluation metrics
evaluation_counter = Counter(
    "lending_evaluation_total",
    "Total loan evaluations performed",
    ["outcome", "loan_type"],  # eligible | ineligible
)

risk_score_histogram = Histogram(
    "lending_risk_score",
    "Distribution of aggregate risk scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

# Lifecycle metrics
transition_counter = Counter(
    "lending_lifecycle_transition_total",
    "Lifecycle transitions applied",
    ["event"],
)

disbursed_amount_counter = Counter(
    "lending_disbursed_cents_total",
    "Principal disbursed, in minor currency units",
    ["loan_type"],
)

disbursement_rejection_counter = Counter(
    "lending_disbursement_rejections_total",
    "Disbursement attempts refused by a guard",
    ["reason"],  # not_approved | already_disbursed | amount_exceeds_approved
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Ledger webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Profile service metrics
profile_fetch_failures_counter = Counter(
    "profile_fetch_failures_total",
    "Failed member profile service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_evaluation(eligible: bool, loan_type: str, risk_score: int) -> None:
    """Record evaluation metrics for monitoring eligibility rates and risk distribution"""
    outcome = "eligible" if eligible else "ineligible"
    evaluation_counter.labels(outcome=outcome, loan_type=loan_type).inc()
    risk_score_histogram.observe(risk_score)


def record_transition(event: str) -> None:
    transition_counter.labels(event=event).inc()


def record_disbursement(loan_type: str, principal_cents: int) -> None:
    disbursed_amount_counter.labels(loan_type=loan_type).inc(principal_cents)


def record_disbursement_rejection(reason: str) -> None:
    disbursement_rejection_counter.labels(reason=reason).inc()
