"""
Pytest configuration and shared fixtures
"""
import pytest
from pathlib import Path

# Load .env from project root for all tests (override=True to ensure fresh values)
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env", override=True)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: mark test as requiring a running Docker daemon"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )


@pytest.fixture
def sample_exposition():
    """Prometheus text output as a container's metrics endpoint would return it"""
    return (
        "# HELP http_requests_total Total number of HTTP requests\n"
        "# TYPE http_requests_total counter\n"
        'http_requests_total{method="GET",code="200"} 1027\n'
        "process_open_fds 12\n"
    )
