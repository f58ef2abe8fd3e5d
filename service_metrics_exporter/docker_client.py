"""
Docker API access for discovering labelled containers and scraping them.

Containers only expose their metrics endpoint on their own loopback
interface, so scraping runs ``curl`` inside the container through the
Docker exec API and collects its standard output.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import docker
from docker.errors import DockerException
from requests.exceptions import RequestException

from service_metrics_exporter.config import (
    CURL_BINARY,
    DEFAULT_SCRAPE_TARGET,
    UNKNOWN_SERVICE_NAME,
)
from service_metrics_exporter.errors import (
    DetachedExecError,
    DiscoveryError,
    EmptyOutputError,
    ExecCreateError,
    ExecStartError,
    NonZeroExitError,
    StreamCollectionError,
)

logger = logging.getLogger(__name__)

# <port>[/<path>], e.g. "9100/metrics" or "8080/actuator/prometheus"
_SCRAPE_TARGET_PATTERN = re.compile(r'^\d{1,5}(/\S*)?$')


@dataclass
class ContainerDescriptor:
    """Snapshot of a running container, fetched fresh for every request."""
    id: str
    labels: Dict[str, str] = field(default_factory=dict)
    name_label: str = 'com.amazonaws.ecs.container-name'

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @property
    def display_name(self) -> str:
        return self.labels.get(self.name_label) or UNKNOWN_SERVICE_NAME

    def scrape_target(self, metrics_label: str) -> str:
        """Port and path to scrape, taken from the container's metrics label."""
        return resolve_scrape_target(self.labels.get(metrics_label))


def resolve_scrape_target(value: Optional[str]) -> str:
    """
    Validate a port-and-path label value.

    Args:
        value: Raw label value, possibly missing or empty.

    Returns:
        The value itself, or DEFAULT_SCRAPE_TARGET if it is unusable.
    """
    if value is None:
        return DEFAULT_SCRAPE_TARGET

    value = value.strip()
    if not _SCRAPE_TARGET_PATTERN.match(value):
        if value:
            logger.debug(f"Ignoring unparsable scrape target {value!r}, using {DEFAULT_SCRAPE_TARGET}")
        return DEFAULT_SCRAPE_TARGET
    return value


def connect(socket_path: Optional[str] = None) -> docker.DockerClient:
    """
    Create the Docker client shared by all requests.

    Args:
        socket_path: Optional Docker daemon URL. If None, uses the environment.

    Raises:
        DockerException: if the daemon cannot be reached.
    """
    try:
        if socket_path:
            client = docker.DockerClient(base_url=socket_path)
        else:
            client = docker.from_env()

        client.ping()
        logger.info("Successfully connected to Docker daemon")
        return client
    except DockerException as e:
        logger.error(f"Failed to connect to Docker daemon: {e}")
        raise


class ContainerDiscovery:
    """Finds running containers that carry the metrics label."""

    def __init__(self, client: docker.DockerClient, metrics_label: str,
                 name_label: str = 'com.amazonaws.ecs.container-name'):
        self.client = client
        self.metrics_label = metrics_label
        self.name_label = name_label

    def list_containers(self) -> List[ContainerDescriptor]:
        """
        List running containers whose labels include the metrics label key.

        Raises:
            DiscoveryError: if the Docker daemon query fails.
        """
        try:
            containers = self.client.containers.list(
                all=False,
                filters={'label': [self.metrics_label]},
                ignore_removed=True,
            )
        except (DockerException, RequestException) as e:
            raise DiscoveryError(f"Failed to list containers with label {self.metrics_label}: {e}") from e

        descriptors = [
            ContainerDescriptor(
                id=container.id,
                labels=dict(container.labels or {}),
                name_label=self.name_label,
            )
            for container in containers
        ]
        logger.debug(f"Found {len(descriptors)} running containers matching label {self.metrics_label}")
        return descriptors


class ContainerScraper:
    """Runs curl inside a container and returns what it printed."""

    def __init__(self, client: docker.DockerClient):
        self.client = client

    @staticmethod
    def curl_command(target: str) -> List[str]:
        return [CURL_BINARY, '-s', f"http://localhost:{target}"]

    def scrape(self, container: ContainerDescriptor, target: str) -> List[str]:
        """
        Fetch the metrics text of one container.

        Args:
            container: Container to run curl in.
            target: Port and path of the loopback metrics endpoint.

        Returns:
            Output lines in the order curl emitted them.

        Raises:
            ScrapeError: if any step fails, the exit code is non-zero or
                nothing was printed.
        """
        exec_id = self._create_exec(container, target)
        output = self._start_exec(container, exec_id)
        exit_code = self._exit_code(exec_id)

        if exit_code != 0:
            raise NonZeroExitError(container.id, exit_code)
        if not output:
            raise EmptyOutputError(container.id, f"no output from exec {exec_id}")

        return output.split('\n')

    def _create_exec(self, container: ContainerDescriptor, target: str) -> str:
        try:
            result = self.client.api.exec_create(
                container.id,
                self.curl_command(target),
                stdout=True,
                stderr=False,
            )
        except (DockerException, RequestException) as e:
            raise ExecCreateError(container.id, f"failed to create exec: {e}") from e
        return result['Id']

    def _start_exec(self, container: ContainerDescriptor, exec_id: str) -> str:
        """Start the exec attached and decode the first collected stdout chunk."""
        try:
            stream = self.client.api.exec_start(exec_id, detach=False, stream=True, demux=True)
        except (DockerException, RequestException) as e:
            raise ExecStartError(container.id, f"failed to start exec {exec_id}: {e}") from e

        if stream is None or isinstance(stream, (str, bytes)):
            raise DetachedExecError(container.id, f"exec {exec_id} started detached")

        logger.debug(f"Started curl in container={container.short_id}")
        try:
            chunks = list(stream)
        except (DockerException, RequestException, OSError) as e:
            raise StreamCollectionError(container.id, f"failed to read output of exec {exec_id}: {e}") from e

        if not chunks:
            raise EmptyOutputError(container.id, f"found no output for exec {exec_id}")

        # Only the first chunk is inspected; stderr-only chunks carry no metrics
        stdout, _ = chunks[0]
        if not stdout:
            return ''
        return stdout.decode('utf-8', errors='replace')

    def _exit_code(self, exec_id: str) -> int:
        try:
            exit_code = self.client.api.exec_inspect(exec_id).get('ExitCode')
        except (DockerException, RequestException) as e:
            logger.warning(f"Failed to get exit code for exec_id={exec_id}, e={e}")
            return -1
        return -1 if exit_code is None else exit_code
