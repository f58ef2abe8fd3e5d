"""
Prometheus metrics describing the exporter itself.

These are served separately from the aggregated container output, which is a
fixed external format and never carries exporter health information.
"""

from prometheus_client import Counter, Gauge


# Discovery failures abort the whole request
exporter_discovery_errors_total = Counter(
    'service_exporter_discovery_errors_total',
    'Total number of failed container discovery queries'
)

# Per-container scrape failures, by failure reason
exporter_scrape_errors_total = Counter(
    'service_exporter_scrape_errors_total',
    'Total number of containers skipped because their scrape failed',
    ['reason']
)

exporter_containers_discovered = Gauge(
    'service_exporter_containers_discovered',
    'Number of containers carrying the metrics label in the last collection'
)

exporter_containers_scraped = Gauge(
    'service_exporter_containers_scraped',
    'Number of containers successfully scraped in the last collection'
)

exporter_malformed_lines_total = Counter(
    'service_exporter_malformed_lines_total',
    'Total number of scraped lines passed through without a container label'
)

exporter_collection_duration_seconds = Gauge(
    'service_exporter_collection_duration_seconds',
    'Time taken to discover, scrape and relabel all containers'
)
