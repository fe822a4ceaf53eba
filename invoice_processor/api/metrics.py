"""Prometheus metrics for the invoice processor.

Exposes key metrics for monitoring:
- Request counts by endpoint and status
- Request duration histograms
- Invoice processing outcomes
- Document analysis latency
- Inventory writes

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

# Invoice processing metrics
invoices_processed_total = Counter(
    "invoices_processed_total",
    "Total invoices processed",
    ["status"],  # completed, failed, invalid
)

image_download_size_bytes = Histogram(
    "invoice_image_download_size_bytes",
    "Size of invoice images downloaded from storage",
    buckets=(10240, 102400, 1048576, 5242880, 10485760),  # 10KB to 10MB
)

# Document analysis metrics
analysis_duration_seconds = Histogram(
    "invoice_analysis_duration_seconds",
    "Document analysis duration in seconds",
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

analysis_requests_total = Counter(
    "invoice_analysis_requests_total",
    "Total document analysis requests",
    ["status"],  # success, failed, empty
)

# Inventory metrics
inventory_writes_total = Counter(
    "inventory_writes_total",
    "Inventory item writes by outcome",
    ["action"],  # created, updated, skipped, failed
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
