"""
Prometheus metrics for the fiscal review service.
"""

from prometheus_client import Counter, Histogram


# ── Reviews ──────────────────────────────────────────────────
verdicts_recorded_total = Counter(
    "verdicts_recorded_total",
    "Total reviewer verdicts recorded (inserts and updates)",
    ["status"],
)

diligences_opened_total = Counter(
    "diligences_opened_total",
    "Total transitions of a reviewer's verdict into divergent",
)

diligence_acks_total = Counter(
    "diligence_acks_total",
    "Total explicit diligence acknowledgments",
)

diligence_acks_reset_total = Counter(
    "diligence_acks_reset_total",
    "Total acknowledgments invalidated by a newly raised divergence",
)

# ── Signatures ───────────────────────────────────────────────
signatures_recorded_total = Counter(
    "signatures_recorded_total",
    "Total signatures recorded",
    ["role"],
)

signatures_rejected_total = Counter(
    "signatures_rejected_total",
    "Total signature attempts rejected as duplicates",
    ["role"],
)

# ── Finalization ─────────────────────────────────────────────
reports_finalized_total = Counter(
    "reports_finalized_total",
    "Total reports finalized into a signed artifact",
)

finalization_failures_total = Counter(
    "finalization_failures_total",
    "Total failed finalization attempts",
    ["stage"],
)

finalization_duration_seconds = Histogram(
    "finalization_duration_seconds",
    "Time to emit, store and commit a final artifact",
    buckets=[0.05, 0.1, 0.5, 1, 2, 5, 10, 30],
)
