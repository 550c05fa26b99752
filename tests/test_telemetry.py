import logging

import pytest

from jobly.core.config import Settings
from jobly.core.telemetry import (
    UNTRACED_IDS,
    TraceContextFilter,
    current_trace_ids,
    parse_headers,
    resolve_exporter_endpoint,
)


def test_parse_headers_splits_pairs_and_skips_malformed_items() -> None:
    assert parse_headers("authorization=Bearer%20x, x-team = jobly ,broken,=empty-key") == {
        "authorization": "Bearer x",
        "x-team": "jobly",
    }


def test_parse_headers_handles_missing_value() -> None:
    assert parse_headers(None) == {}
    assert parse_headers("") == {}


def test_resolve_exporter_endpoint_prefers_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://generic:4318")
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)

    assert resolve_exporter_endpoint(Settings(otel_exporter_otlp_endpoint="http://collector:4318")) == (
        "http://collector:4318"
    )
    assert resolve_exporter_endpoint(Settings(otel_exporter_otlp_endpoint=None)) == "http://generic:4318"


def test_resolve_exporter_endpoint_none_when_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", raising=False)
    assert resolve_exporter_endpoint(Settings(otel_exporter_otlp_endpoint=None)) is None


def test_trace_context_filter_stamps_untraced_ids_outside_spans() -> None:
    record = logging.LogRecord("jobly", logging.INFO, __file__, 1, "hello", None, None)

    assert TraceContextFilter().filter(record) is True
    assert (record.trace_id, record.span_id) == UNTRACED_IDS
    assert current_trace_ids() == UNTRACED_IDS
