from __future__ import annotations

from visionrelay.core.telemetry.logging import get_logger
from visionrelay.core.telemetry.tracing import AttemptTrace, recent_traces, trace_event


def test_trace_event_emits_structured_fields(capsys):
    logger = get_logger("test.logger")
    ctx = AttemptTrace(request_id="req1", provider="p1", attempt=2)

    trace_event(logger, ctx, event="provider_attempt_failed", status="error", extra={"error": "HTTP 500"})
    out = capsys.readouterr().out
    assert '"event": "provider_attempt_failed"' in out
    assert '"request_id": "req1"' in out
    assert '"provider": "p1"' in out
    assert '"attempt": 2' in out
    assert '"status": "error"' in out


def test_recent_traces_filters_by_request():
    logger = get_logger("test.logger")
    trace_event(logger, AttemptTrace("req-a", "p1", 1), event="provider_succeeded", status="ok")
    trace_event(logger, AttemptTrace("req-b", "p2", 1), event="provider_succeeded", status="ok")

    items = recent_traces(request_id="req-a")
    assert items
    assert all(i["request_id"] == "req-a" for i in items)
    assert items[-1]["provider"] == "p1"
