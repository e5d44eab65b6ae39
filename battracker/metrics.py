"""Prometheus metrics for the bat price tracker."""

from prometheus_client import Counter, Histogram, Info

app_info = Info("bat_tracker", "Bat price tracker application info")
app_info.info({"version": "0.1.0", "name": "bat-tracker"})

# Pipeline metrics
models_processed_total = Counter(
    "bat_models_processed_total",
    "Bat models processed by a pipeline run",
    ["source", "outcome"],
)

variants_created_total = Counter(
    "bat_variants_created_total",
    "Bat variants created by the reconciler",
    ["source"],
)

price_writes_total = Counter(
    "bat_price_writes_total",
    "Price observations applied to the store",
    ["retailer", "action"],
)

price_rejections_total = Counter(
    "bat_price_rejections_total",
    "Price observations rejected by validation",
    ["retailer"],
)

# Source metrics
source_requests_total = Counter(
    "bat_source_requests_total",
    "Outbound requests to retailer sources",
    ["source", "operation", "status"],
)

pipeline_run_duration_seconds = Histogram(
    "bat_pipeline_run_duration_seconds",
    "Wall-clock duration of a full pipeline run",
    ["source"],
    buckets=[30.0, 60.0, 300.0, 600.0, 1800.0, 3600.0, 7200.0],
)


def record_model_outcome(source: str, outcome: str) -> None:
    """Record the outcome ('updated', 'skipped', 'error') of one model."""
    models_processed_total.labels(source=source, outcome=outcome).inc()


def record_price_write(retailer: str, action: str) -> None:
    """Record an applied price observation ('inserted', 'touched', 'updated')."""
    price_writes_total.labels(retailer=retailer, action=action).inc()


def record_source_request(source: str, operation: str, status: str) -> None:
    """Record an outbound source request."""
    source_requests_total.labels(source=source, operation=operation, status=status).inc()
