"""Tests for metrics helpers."""
from __future__ import annotations

from typing import Any, Dict

from journalmate.observability import metrics
from journalmate.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.ended = False
        self.errors: list[Dict[str, Any]] = []

    def update(self, error_info: Dict[str, Any]) -> None:
        self.errors.append(error_info)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


def test_log_metric_closes_trace(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("activity.copy.preserved_progress", 2, metadata={"user_id": "u-1"})

    assert dummy_client.traces, "Metric call should record a trace"
    recorded = dummy_client.traces[0]
    assert recorded.name == "metric:activity.copy.preserved_progress"
    assert recorded.metadata["value"] == 2
    assert recorded.metadata["user_id"] == "u-1"
    assert recorded.ended is True


def test_trace_records_error_and_reraises(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    try:
        with tracing.trace("activity.copy", metadata={"share_token": "tok1"}, request_id="req-1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    else:  # pragma: no cover
        raise AssertionError("trace must re-raise")

    recorded = dummy_client.traces[0]
    assert recorded.metadata == {"share_token": "tok1", "request_id": "req-1"}
    assert recorded.errors == [{"message": "boom", "type": "RuntimeError"}]
    assert recorded.ended is True


def test_log_metric_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    metrics.log_metric("activity.copy.success", 1)
