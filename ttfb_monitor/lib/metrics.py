"""Prometheus metrics for ingestion, reporting and request performance."""

from prometheus_client import Counter, Histogram


# Ingest metrics
ingest_requests_total = Counter(
    'ttfb_ingest_requests_total',
    'Ingest requests by outcome',
    ['outcome', 'category']
)

reported_ttfb_ms = Histogram(
    'ttfb_reported_ms',
    'TTFB of stored samples in milliseconds',
    ['category'],
    buckets=[800, 1000, 1200, 1500, 1800, 2500, 3500, 5000, 10000]
)

# Reporting metrics
summary_emails_total = Counter(
    'ttfb_summary_emails_total',
    'Daily summary email runs by outcome',
    ['outcome']
)

# Performance metrics
request_duration_seconds = Histogram(
    'request_duration_seconds',
    'Request duration in seconds',
    ['endpoint', 'method', 'status'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0]
)


def record_ingest(outcome: str, category: str = '', ttfb_ms: int | None = None):
    """Record the outcome of one ingest request.

    Args:
        outcome: 'stored', 'below_threshold', 'store_failure', 'invalid' or 'forbidden'
        category: Sample category when one was computed
        ttfb_ms: Measured TTFB, observed only for stored samples
    """
    ingest_requests_total.labels(outcome=outcome, category=category).inc()
    if outcome == 'stored' and ttfb_ms is not None:
        reported_ttfb_ms.labels(category=category).observe(ttfb_ms)


def record_summary_email(outcome: str):
    """Record one daily summary run ('sent', 'skipped' or 'failed')."""
    summary_emails_total.labels(outcome=outcome).inc()


def record_request_duration(endpoint: str, method: str, status: int, duration_seconds: float):
    """Record overall request duration.

    Args:
        endpoint: API endpoint path
        method: HTTP method (GET, POST, etc.)
        status: HTTP status code
        duration_seconds: Request duration in seconds
    """
    request_duration_seconds.labels(
        endpoint=endpoint,
        method=method,
        status=str(status)
    ).observe(duration_seconds)
