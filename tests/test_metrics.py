"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from typing import Any, Dict

import pytest

from lets_habit.observability import client as opik_client
from lets_habit.observability import metrics
from lets_habit.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.ended = False
        self.error_info: Dict[str, Any] | None = None

    def update(self, **kwargs: Any) -> None:
        self.error_info = kwargs.get("error_info", self.error_info)

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
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("habit.log.confirmed", 1, metadata={"habit_id": "abc"})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:habit.log.confirmed"
    assert dummy_client.traces[0].metadata["value"] == 1
    assert dummy_client.traces[0].metadata["habit_id"] == "abc"
    assert dummy_client.traces[0].ended is True


def test_log_metric_is_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: None)

    metrics.log_metric("habit.list.count", 3)


def test_timed_emits_success_and_latency(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: dummy_client)

    with metrics.timed("habit.create"):
        pass

    names = [trace.name for trace in dummy_client.traces]
    assert names == ["metric:habit.create.success", "metric:habit.create.latency_ms"]
    assert dummy_client.traces[1].metadata["value"] >= 0


def test_trace_records_error_and_reraises(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(opik_client, "get_opik_client", lambda: dummy_client)

    with pytest.raises(ValueError):
        with tracing.trace("habit.log", metadata={"habit_id": "abc"}, user_id="u1", request_id="r1"):
            raise ValueError("boom")

    span = dummy_client.traces[0]
    assert span.metadata["user_id"] == "u1"
    assert span.metadata["request_id"] == "r1"
    assert span.error_info == {"message": "boom", "type": "ValueError"}
    assert span.ended is True
