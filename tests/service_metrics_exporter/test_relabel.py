"""
Tests for metric line relabeling
"""
import logging

import pytest
from prometheus_client import REGISTRY

from service_metrics_exporter.relabel import (
    LineKind,
    classify_line,
    relabel_line,
    relabel_lines,
    service_label,
)


class TestClassifyLine:
    """Test line classification"""

    @pytest.mark.parametrize("line,kind", [
        ("# HELP http_requests_total Total requests", LineKind.COMMENT),
        ("   # TYPE http_requests_total counter", LineKind.COMMENT),
        ('http_requests_total{method="GET"} 5', LineKind.LABELED),
        ("http_requests_total 5", LineKind.UNLABELED),
        ("foobar", LineKind.MALFORMED),
        ("", LineKind.MALFORMED),
    ])
    def test_classify(self, line, kind):
        assert classify_line(line) == kind


class TestRelabelLine:
    """Test relabel_line"""

    def test_comment_unchanged(self):
        line = "# HELP http_requests_total Total number of requests"
        assert relabel_line(line, "web1") == line

    def test_indented_comment_returned_verbatim(self):
        line = "  # TYPE go_goroutines gauge"
        assert relabel_line(line, "web1") == line

    def test_unlabeled_sample_gets_new_label_group(self):
        assert relabel_line("http_requests_total 5", "web1") == \
            "http_requests_total{container_name=web1} 5"

    def test_unlabeled_sample_with_timestamp(self):
        assert relabel_line("process_start_time_seconds 1.7e9 1700000000000", "api") == \
            "process_start_time_seconds{container_name=api} 1.7e9 1700000000000"

    def test_labeled_sample_gets_first_label(self):
        line = 'http_requests_total{method="GET"} 5'
        assert relabel_line(line, "web1") == \
            'http_requests_total{container_name=web1,method="GET"} 5'

    def test_labeled_sample_with_several_labels(self):
        line = 'http_requests_total{method="GET",code="200"} 5'
        assert relabel_line(line, "web1") == \
            'http_requests_total{container_name=web1,method="GET",code="200"} 5'

    def test_empty_label_group(self):
        # A trailing comma before } is accepted by the exposition parser
        assert relabel_line("up{} 1", "web1") == "up{container_name=web1,} 1"

    def test_label_value_is_not_quoted(self):
        assert service_label("web1") == "container_name=web1"
        assert 'container_name="web1"' not in relabel_line("up 1", "web1")

    def test_malformed_line_unchanged_and_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="service_metrics_exporter.relabel")
        before = REGISTRY.get_sample_value('service_exporter_malformed_lines_total') or 0

        assert relabel_line("foobar", "web1") == "foobar"

        assert any("foobar" in record.getMessage() for record in caplog.records)
        assert all(record.levelno == logging.INFO for record in caplog.records)
        assert REGISTRY.get_sample_value('service_exporter_malformed_lines_total') == before + 1

    def test_empty_line_unchanged(self):
        assert relabel_line("", "web1") == ""


def test_relabel_lines_preserves_order():
    lines = [
        "# TYPE a counter",
        "a 1",
        'b{x="y"} 2',
        "",
    ]

    assert relabel_lines(lines, "svc") == [
        "# TYPE a counter",
        "a{container_name=svc} 1",
        'b{container_name=svc,x="y"} 2',
        "",
    ]
