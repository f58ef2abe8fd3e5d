"""
Main Service Metrics Exporter application.

Discovers labelled containers, scrapes their loopback-only metrics endpoint
through Docker exec, tags every sample with the container name and serves the
combined text on a single HTTP endpoint.
"""

import sys
import time
import logging
import signal
from typing import Optional

import docker
from flask import Flask, Response
from prometheus_client import generate_latest, REGISTRY, CONTENT_TYPE_LATEST
from docker.errors import DockerException

from service_metrics_exporter import __version__, metrics
from service_metrics_exporter.config import ExporterConfig, load_config
from service_metrics_exporter.docker_client import (
    ContainerDiscovery,
    ContainerScraper,
    connect,
)
from service_metrics_exporter.errors import DiscoveryError, ScrapeError
from service_metrics_exporter.relabel import relabel_lines

logger = logging.getLogger(__name__)


class ServiceMetricsExporter:
    """Aggregates the metrics of all labelled containers into one text body."""

    def __init__(self, discovery: ContainerDiscovery, scraper: ContainerScraper):
        self.discovery = discovery
        self.scraper = scraper

    @property
    def metrics_label(self) -> str:
        return self.discovery.metrics_label

    def export_metrics(self) -> str:
        """
        Produce the current aggregated metrics text.

        Raises:
            DiscoveryError: if the containers could not be listed.
        """
        logger.debug("Handling request for getting metrics")
        combined = self.get_combined_metrics()
        if combined is None:
            raise DiscoveryError("Container discovery failed")
        return combined

    def get_combined_metrics(self) -> Optional[str]:
        """
        Scrape and relabel every container carrying the metrics label.

        Returns:
            Combined metrics text (possibly empty), or None if discovery failed.
        """
        start_time = time.time()
        try:
            containers = self.discovery.list_containers()
        except DiscoveryError as e:
            logger.warning(f"Failed to get list of Docker containers, e={e}")
            metrics.exporter_discovery_errors_total.inc()
            return None

        metrics.exporter_containers_discovered.set(len(containers))
        combined = ''
        containers_scraped = 0

        for container in containers:
            target = container.scrape_target(self.metrics_label)
            try:
                lines = self.scraper.scrape(container, target)
            except ScrapeError as e:
                logger.warning(
                    f"Skipping container={container.short_id} ({container.display_name}), "
                    f"reason={e.reason}, e={e}"
                )
                metrics.exporter_scrape_errors_total.labels(reason=e.reason).inc()
                continue

            block = '\n'.join(relabel_lines(lines, container.display_name))
            if combined and not combined.endswith('\n'):
                combined += '\n'
            combined += block
            containers_scraped += 1

        duration = time.time() - start_time
        metrics.exporter_containers_scraped.set(containers_scraped)
        metrics.exporter_collection_duration_seconds.set(duration)
        logger.debug(f"Scraped {containers_scraped}/{len(containers)} containers in {duration:.2f} seconds")
        return combined


class ExporterServer:
    """HTTP front end serving the aggregated metrics."""

    def __init__(self, exporter: ServiceMetricsExporter, client: docker.DockerClient,
                 host: str = '0.0.0.0', port: int = 9102):
        self.exporter = exporter
        self.client = client
        self.host = host
        self.port = port

        self.app = Flask(__name__)
        self._setup_routes()

    def _setup_routes(self):
        """Setup Flask routes."""

        @self.app.route('/metrics')
        def metrics_endpoint():
            """Aggregated container metrics."""
            try:
                body = self.exporter.export_metrics()
            except DiscoveryError:
                return Response('container discovery failed\n', status=503, mimetype='text/plain')
            return Response(body, mimetype=CONTENT_TYPE_LATEST)

        @self.app.route('/exporter-metrics')
        def exporter_metrics_endpoint():
            """Metrics about the exporter itself."""
            return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)

        @self.app.route('/health')
        def health():
            """Health check endpoint."""
            try:
                self.client.ping()
                return {'status': 'healthy', 'docker': 'connected'}, 200
            except (DockerException, OSError):
                return {'status': 'unhealthy', 'docker': 'disconnected'}, 503

        @self.app.route('/')
        def root():
            """Root endpoint with information."""
            return {
                'name': 'Service Metrics Exporter',
                'version': __version__,
                'metrics_label': self.exporter.metrics_label,
                'endpoints': {
                    '/metrics': 'Aggregated container metrics',
                    '/exporter-metrics': 'Exporter self metrics',
                    '/health': 'Health check'
                }
            }

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.stop()
        sys.exit(0)

    def start(self):
        """Serve HTTP until interrupted."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info(f"Starting HTTP server on {self.host}:{self.port}...")
        self.app.run(host=self.host, port=self.port, threaded=True)

    def stop(self):
        """Release the Docker connection."""
        logger.info("Stopping Service Metrics Exporter...")
        try:
            self.client.close()
            logger.info("Docker client connection closed")
        except DockerException as e:
            logger.error(f"Error closing Docker client: {e}")


def build_server(config: ExporterConfig, client: docker.DockerClient) -> ExporterServer:
    """Wire discovery, scraping and the HTTP server around one Docker client."""
    discovery = ContainerDiscovery(client, config.metrics_label, config.name_label)
    exporter = ServiceMetricsExporter(discovery, ContainerScraper(client))
    return ExporterServer(exporter, client, host=config.host, port=config.port)


def configure_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def main():
    """Main entry point."""
    config = load_config()
    configure_logging(config.log_level)

    logger.info(f"Service Metrics Exporter v{__version__}")
    logger.info(f"Configuration: metrics_label={config.metrics_label}, "
                f"name_label={config.name_label}, port={config.port}")

    try:
        client = connect(config.socket_path)
    except DockerException as e:
        logger.error(f"Failed to initialize Docker client: {e}")
        logger.error("Make sure Docker socket is mounted and accessible")
        sys.exit(1)

    server = build_server(config, client)
    try:
        server.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        server.stop()
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        server.stop()
        sys.exit(1)


if __name__ == '__main__':
    main()
