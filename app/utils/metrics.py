"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
unlock_requests_total = Counter(
    "unlock_requests_total",
    "Total unlock requests by outcome",
    ["vertical_key", "outcome"],  # granted, noop, InsufficientCredits, UnknownVertical, StoreUnavailable
)

records_unlocked_total = Counter(
    "records_unlocked_total",
    "Total records newly unlocked",
    ["vertical_key"],
)

credits_charged_total = Counter(
    "credits_charged_total",
    "Total credits charged for unlocks",
    ["vertical_key"],
)

ledger_appends_total = Counter(
    "ledger_appends_total",
    "Total credit ledger appends",
    ["kind"],  # charge, credit
)

unlock_conflicts_total = Counter(
    "unlock_conflicts_total",
    "Unlock transactions rolled back on a grant uniqueness conflict",
    ["vertical_key"],
)

# Histograms
unlock_duration_seconds = Histogram(
    "unlock_duration_seconds",
    "Unlock transaction duration",
    ["vertical_key"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
