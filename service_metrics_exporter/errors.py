"""
Exceptions raised while discovering and scraping containers.
"""
from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class DiscoveryError(ExporterError):
    """Listing containers from the Docker daemon failed."""


class ScrapeError(ExporterError):
    """Scraping a single container failed; the container is skipped."""

    reason = 'unknown'

    def __init__(self, container_id: str, message: str):
        super().__init__(message)
        self.container_id = container_id


class ExecCreateError(ScrapeError):
    reason = 'create'


class ExecStartError(ScrapeError):
    reason = 'start'


class DetachedExecError(ScrapeError):
    reason = 'detached'


class StreamCollectionError(ScrapeError):
    reason = 'stream'


class EmptyOutputError(ScrapeError):
    reason = 'empty_output'


class NonZeroExitError(ScrapeError):
    reason = 'exit_code'

    def __init__(self, container_id: str, exit_code: Optional[int]):
        super().__init__(container_id, f"curl exited with code {exit_code}")
        self.exit_code = exit_code
