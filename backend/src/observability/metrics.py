"""Prometheus metrics for the feedback relay.

Defines and exposes operational metrics for monitoring and alerting.
Labels are bounded enums; no fingerprint, token, address or item id is
ever used as a label value.
"""

from prometheus_client import Counter, Histogram

# Admission metrics
admission_decisions_total = Counter(
    "relay_admission_decisions_total",
    "Admission decisions",
    ["decision", "reason", "limiter"]  # decision: allow|deny, reason: rate_limited|blocked|bot_suspected|service_unavailable|none
)

# Content pipeline metrics
pipeline_calls_total = Counter(
    "relay_pipeline_calls_total",
    "Content provider calls",
    ["provider", "status"]  # status: ok|blocked|timeout|error
)

pipeline_latency_ms = Histogram(
    "relay_pipeline_latency_ms",
    "Content provider call latency in milliseconds",
    ["provider"],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000]
)

pipeline_failovers_total = Counter(
    "relay_pipeline_failovers_total",
    "Times the pipeline moved on to the next provider",
    ["from_provider"]
)

# Submission lifecycle metrics
state_transitions_total = Counter(
    "relay_state_transitions_total",
    "Feedback item state transitions",
    ["from_status", "to_status"]
)

deliveries_total = Counter(
    "relay_deliveries_total",
    "Outbound messages by kind",
    ["kind", "status"]  # kind: feedback|sender_confirmation|..., status: success|error
)

# Abuse metrics
abuse_reports_total = Counter(
    "relay_abuse_reports_total",
    "Abuse reports filed",
    ["level"]  # level: sender_specific|global
)

# Retention metrics
retention_records_total = Counter(
    "relay_retention_records_total",
    "Records removed or redacted by the retention job",
    ["record_type"]
)
