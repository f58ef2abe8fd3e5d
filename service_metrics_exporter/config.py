"""
Configuration for the Service Metrics Exporter
"""
import os
import logging
from typing import Optional, Dict, Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Scrape target used when a container's metrics label holds no usable value
DEFAULT_SCRAPE_TARGET = '9100/metrics'
# Display name used when a container carries no orchestration name label
UNKNOWN_SERVICE_NAME = 'unknown-service'
CURL_BINARY = '/bin/curl'

CONFIG_FILE = os.environ.get('CONFIG_FILE', '/app/service_metrics_exporter/config.yaml')


class ExporterConfig(BaseModel):
    """Runtime settings for the exporter process"""

    # Container selection
    metrics_label: str = Field(
        default_factory=lambda: os.getenv('METRICS_LABEL', 'metrics.port-path')
    )
    name_label: str = Field(
        default_factory=lambda: os.getenv('NAME_LABEL', 'com.amazonaws.ecs.container-name')
    )

    # HTTP server
    host: str = Field(default_factory=lambda: os.getenv('EXPORTER_HOST', '0.0.0.0'))
    port: int = Field(default_factory=lambda: int(os.getenv('EXPORTER_PORT', '9102')))

    # Docker
    socket_path: Optional[str] = Field(
        default_factory=lambda: os.getenv('DOCKER_SOCKET_PATH') or None
    )

    log_level: str = Field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO').upper())


def load_config_file(path: str = CONFIG_FILE) -> Dict[str, Any]:
    """Load the ``exporter`` section of a YAML config file"""
    try:
        if not os.path.exists(path):
            logger.debug(f"Config file not found: {path}, using environment and defaults")
            return {}
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return data.get('exporter') or {}
    except (OSError, yaml.YAMLError, AttributeError) as e:
        logger.error(f"Failed to load config file {path}: {e}")
        return {}


def load_config(path: str = CONFIG_FILE) -> ExporterConfig:
    """
    Build the exporter configuration.

    Values from the config file override environment variables, which in
    turn override the built-in defaults.

    Returns:
        ExporterConfig instance
    """
    return ExporterConfig(**load_config_file(path))
