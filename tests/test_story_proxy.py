from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from services import story_proxy
from services.proxy_common import ProxyResponse, error_response


@pytest.fixture
def dify_calls(monkeypatch):
    calls: list[dict] = []
    answers: list[ProxyResponse] = []

    def fake_send(app, query, *, user, conversation_id=None, inputs=None):
        calls.append({"app": app, "query": query, "user": user, "conversation_id": conversation_id})
        return answers.pop(0)

    monkeypatch.setattr(story_proxy, "send_chat_message", fake_send)
    return calls, answers


def _answer(text: str, conversation_id: str | None = "conv-1") -> ProxyResponse:
    return ProxyResponse(status=200, payload={"answer": text, "conversation_id": conversation_id})


def test_dify_chat_requires_message(dify_calls):
    calls, _ = dify_calls
    result = story_proxy.dify_chat({"message": "  "})
    assert result.status == 400
    assert result.payload == {"error": "Message cannot be empty"}
    assert calls == []


def test_dify_chat_forwards_to_brainstorm_app(dify_calls):
    calls, answers = dify_calls
    answers.append(_answer("Where? forest"))

    result = story_proxy.dify_chat({"message": "hi", "conversation_id": "c-2", "user_id": "kid"})

    assert result.payload["answer"] == "Where? forest"
    assert calls[0]["app"] == "brainstorm"
    assert calls[0]["conversation_id"] == "c-2"
    assert calls[0]["user"] == "kid"


def test_dify_chat_defaults_user(dify_calls):
    calls, answers = dify_calls
    answers.append(_answer("ok"))
    story_proxy.dify_chat({"message": "hi"})
    assert calls[0]["user"] == "default-user"


def test_dify_plot_summary_requires_history(dify_calls):
    result = story_proxy.dify_plot_summary({"conversation_history": []})
    assert result.status == 400
    assert result.payload == {"error": "Conversation history cannot be empty"}


def test_dify_plot_summary_returns_summary(dify_calls):
    calls, answers = dify_calls
    answers.append(_answer("setting: forest\nconflict: unknown\ngoal: unknown", "sum-1"))

    result = story_proxy.dify_plot_summary(
        {
            "conversation_history": [
                {"role": "ai", "content": "Where does it happen?"},
                {"role": "user", "content": "In the forest"},
            ],
        }
    )

    assert result.status == 200
    assert result.payload == {
        "summary": "setting: forest\nconflict: unknown\ngoal: unknown",
        "conversation_id": "sum-1",
        "needsMoreConversation": False,
    }
    assert calls[0]["app"] == "summary"
    assert "Student: In the forest" in calls[0]["query"]


@pytest.mark.parametrize("answer", ["", "We need more conversation first.", "NEED MORE CONVERSATION"])
def test_dify_plot_summary_flags_needs_more(dify_calls, answer):
    _, answers = dify_calls
    answers.append(_answer(answer))
    result = story_proxy.dify_plot_summary({"conversation_history": [{"role": "user", "content": "hi"}]})
    assert result.payload["needsMoreConversation"] is True
    assert result.payload["summary"] == ""


def test_dify_plot_summary_passes_upstream_error(dify_calls):
    _, answers = dify_calls
    answers.append(error_response(504, "Dify request timeout. Please try again."))
    result = story_proxy.dify_plot_summary({"conversation_history": [{"role": "user", "content": "hi"}]})
    assert result.status == 504


def test_dify_structure_examples_parses_fenced_json(dify_calls):
    _, answers = dify_calls
    body = {
        "freytag": {"story": "Story one."},
        "threeAct": {"story": "Story two."},
        "fichtean": "Story three.",
        "extra": {"story": "ignored"},
    }
    answers.append(_answer("```json\n" + json.dumps(body) + "\n```"))

    result = story_proxy.dify_structure_examples({"character": {"name": "Milo"}, "plot": {"setting": "forest"}})

    assert result.status == 200
    assert result.payload == {
        "freytag": {"story": "Story one."},
        "threeAct": {"story": "Story two."},
        "fichtean": {"story": "Story three."},
    }


def test_dify_structure_examples_invalid_json(dify_calls):
    _, answers = dify_calls
    answers.append(_answer("Sorry, I cannot help."))
    result = story_proxy.dify_structure_examples({})
    assert result.status == 500
    assert result.payload["error"].startswith("Failed to parse structure examples")


def test_dify_structure_examples_empty_object(dify_calls):
    _, answers = dify_calls
    answers.append(_answer("{}"))
    result = story_proxy.dify_structure_examples({})
    assert result.status == 500


def test_parse_json_answer_extracts_embedded_object():
    data, error = story_proxy.parse_json_answer('Here you go: {"freytag": {"story": "x"}} enjoy!')
    assert error is None
    assert data == {"freytag": {"story": "x"}}


def test_dify_progress_mentor_returns_message(dify_calls):
    calls, answers = dify_calls
    answers.append(_answer("  Hang tight, magic is coming!  "))
    result = story_proxy.dify_progress_mentor({"action": "Generating", "stage": "structure"})
    assert result.payload == {"message": "Hang tight, magic is coming!"}
    assert calls[0]["app"] == "mentor"


def test_dify_writing_hint_requires_section(dify_calls):
    result = story_proxy.dify_writing_hint({"section": ""})
    assert result.status == 400


def test_dify_writing_hint_returns_hint(dify_calls):
    calls, answers = dify_calls
    answers.append(_answer("What does Milo see first?", "w-1"))
    result = story_proxy.dify_writing_hint(
        {"section": "Setup", "draft": "Milo woke up.", "structure": {"type": "threeAct"}}
    )
    assert result.payload == {"hint": "What does Milo see first?", "conversation_id": "w-1"}
    assert calls[0]["app"] == "writing"
    assert "Milo woke up." in calls[0]["query"]


def test_save_interaction_requires_user():
    result = story_proxy.save_interaction({"stage": "plot"})
    assert result.status == 400
    assert result.payload == {"error": "user_id is required"}


def test_save_interaction_generates_work_id_for_story(monkeypatch):
    recorded: list[dict] = []

    def fake_record(**kwargs):
        recorded.append(kwargs)
        return None

    monkeypatch.setattr(story_proxy, "record_interaction", fake_record)

    result = story_proxy.save_interaction(
        {"user_id": "kid", "stage": "review", "story": "The end.", "character": {"name": "Milo"}},
        client_ip="1.2.3.4",
    )

    assert result.status == 200
    assert result.payload["success"] is False
    work_id = result.payload["workId"]
    assert isinstance(work_id, str) and len(work_id) == 32
    assert recorded[0]["work_id"] == work_id
    assert recorded[0]["client_ip"] == "1.2.3.4"


def test_save_interaction_reuses_existing_work_id(monkeypatch):
    monkeypatch.setattr(story_proxy, "record_interaction", lambda **kwargs: None)
    result = story_proxy.save_interaction({"user_id": "kid", "story": "The end.", "workId": "w-42"})
    assert result.payload["workId"] == "w-42"


def test_save_interaction_reports_unsaved_story(monkeypatch):
    unsaved = SimpleNamespace(work_id=None)
    monkeypatch.setattr(story_proxy, "record_interaction", lambda **kwargs: unsaved)
    result = story_proxy.save_interaction({"user_id": "kid", "story": "The end.", "workId": "w-42"})
    assert result.status == 200
    assert result.payload == {"success": False, "workId": "w-42"}


def test_save_interaction_success_for_plain_interaction(monkeypatch):
    monkeypatch.setattr(story_proxy, "record_interaction", lambda **kwargs: SimpleNamespace(work_id=None))
    result = story_proxy.save_interaction({"user_id": "kid", "stage": "plot"})
    assert result.payload == {"success": True, "workId": None}
