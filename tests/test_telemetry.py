from __future__ import annotations

import telemetry


def test_emit_interaction_adds_session_user_and_client_ip(monkeypatch):
    recorded: list[dict] = []
    monkeypatch.setattr(telemetry, "record_interaction", lambda **kwargs: recorded.append(kwargs))
    monkeypatch.setattr(telemetry, "get_client_ip", lambda: "203.0.113.7")
    monkeypatch.setattr(telemetry.st, "session_state", {"user_id": "student-1"}, raising=False)

    telemetry.emit_interaction(stage="plot", input={"messages": []}, output={"plotData": {}})

    assert recorded[0]["user_id"] == "student-1"
    assert recorded[0]["client_ip"] == "203.0.113.7"
    assert recorded[0]["stage"] == "plot"


def test_emit_interaction_explicit_user_wins(monkeypatch):
    recorded: list[dict] = []
    monkeypatch.setattr(telemetry, "record_interaction", lambda **kwargs: recorded.append(kwargs))
    monkeypatch.setattr(telemetry, "get_client_ip", lambda: None)
    monkeypatch.setattr(telemetry.st, "session_state", {"user_id": "student-1"}, raising=False)

    telemetry.emit_interaction(stage="plot", user_id="student-2")

    assert recorded[0]["user_id"] == "student-2"
