"""
Line relabeling for Prometheus text exposition output.

Each line scraped from a container is classified once and then rewritten so
that every sample carries a ``container_name`` label identifying the
container it came from. Comment and metadata lines are never touched.
"""

import logging
from enum import Enum
from typing import Iterable, List

from service_metrics_exporter import metrics

logger = logging.getLogger(__name__)

CONTAINER_NAME_LABEL = 'container_name'


class LineKind(str, Enum):
    """Classification of a single exposition-format line."""
    COMMENT = "comment"
    LABELED = "labeled"
    UNLABELED = "unlabeled"
    MALFORMED = "malformed"


def service_label(container_name: str) -> str:
    """
    Render the identity label for a container.

    The value is emitted unquoted, so callers must make sure the name
    contains nothing that breaks label syntax.
    """
    return f"{CONTAINER_NAME_LABEL}={container_name}"


def classify_line(line: str) -> LineKind:
    """Determine which rewrite rule applies to a line."""
    if line.strip().startswith('#'):
        return LineKind.COMMENT
    if '{' in line:
        return LineKind.LABELED
    if ' ' in line:
        return LineKind.UNLABELED
    return LineKind.MALFORMED


def _relabel_labeled(line: str, label: str) -> str:
    # Inject as the first label of the existing group
    brace = line.find('{') + 1
    return f"{line[:brace]}{label},{line[brace:]}"


def _relabel_unlabeled(line: str, label: str) -> str:
    space = line.find(' ')
    return f"{line[:space]}{{{label}}}{line[space:]}"


def relabel_line(line: str, container_name: str) -> str:
    """
    Add the container identity label to one metric line.

    Args:
        line: Raw line as emitted by the container's metrics endpoint.
        container_name: Display name of the owning container.

    Returns:
        The rewritten line, or the original line for comments and
        lines that match neither rewrite rule.
    """
    kind = classify_line(line)

    if kind is LineKind.COMMENT:
        return line
    if kind is LineKind.LABELED:
        return _relabel_labeled(line, service_label(container_name))
    if kind is LineKind.UNLABELED:
        return _relabel_unlabeled(line, service_label(container_name))

    logger.info(
        f"Encountered a line that is neither comment nor parsable metric, "
        f"not attaching container name: {line!r}"
    )
    metrics.exporter_malformed_lines_total.inc()
    return line


def relabel_lines(lines: Iterable[str], container_name: str) -> List[str]:
    """Relabel a batch of lines, preserving their order."""
    return [relabel_line(line, container_name) for line in lines]
