"""
Service Metrics Exporter

Aggregates the loopback-only Prometheus endpoints of labelled Docker
containers into a single scrape target, tagging each sample with the name of
the container it came from.
"""

__version__ = "1.0.0"
