"""Route handlers for the Dify-backed bots and the interactions log."""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Tuple

from app_constants import DEFAULT_USER_ID, STRUCTURE_TYPES
from interaction_log import record_interaction
from prompts.story import (
    NEEDS_MORE_MARKER,
    build_plot_summary_query,
    build_progress_mentor_query,
    build_structure_examples_query,
    build_writing_hint_query,
)
from services.dify_api import send_chat_message
from services.proxy_common import ProxyResponse, body_text, error_response
from story_identifier import generate_work_id

logger = logging.getLogger(__name__)


def _strip_json_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        filtered_lines = [
            line for line in cleaned.splitlines()
            if not line.strip().lower().startswith("json")
        ]
        cleaned = "\n".join(filtered_lines).strip()
    return cleaned


def _extract_first_json_object(text: str) -> str | None:
    """Best-effort extraction of the first top-level JSON object from arbitrary text."""

    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for idx, char in enumerate(text[start:], start=start):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:idx + 1]
    return None


def parse_json_answer(text: str) -> Tuple[dict | None, str | None]:
    """Parse a bot answer that should be JSON, tolerating fences and chatter."""

    cleaned = _strip_json_code_fence(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        fallback = _extract_first_json_object(text or "")
        if fallback is None:
            return None, f"JSONDecodeError: {exc}"
        try:
            data = json.loads(fallback)
        except json.JSONDecodeError as exc_inner:
            return None, f"JSONDecodeError: {exc_inner}"
    if not isinstance(data, dict):
        return None, "Expected a JSON object"
    return data, None


def _mapping(body: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = body.get(key) if isinstance(body, Mapping) else None
    return dict(value) if isinstance(value, Mapping) else None


def _user(body: Mapping[str, Any]) -> str:
    return body_text(body, "user_id") or DEFAULT_USER_ID


def dify_chat(body: Mapping[str, Any]) -> ProxyResponse:
    message = body_text(body, "message")
    if not message:
        return error_response(400, "Message cannot be empty")
    return send_chat_message(
        "brainstorm",
        message,
        user=_user(body),
        conversation_id=body_text(body, "conversation_id") or None,
    )


def needs_more_conversation(answer: str) -> bool:
    text = (answer or "").strip()
    return not text or NEEDS_MORE_MARKER in text.lower()


def dify_plot_summary(body: Mapping[str, Any]) -> ProxyResponse:
    """Summarize the brainstorm transcript into ``setting/conflict/goal`` lines."""

    history = body.get("conversation_history") if isinstance(body, Mapping) else None
    if not isinstance(history, list) or not history:
        return error_response(400, "Conversation history cannot be empty")

    messages = [item for item in history if isinstance(item, Mapping)]
    result = send_chat_message(
        "summary",
        build_plot_summary_query(messages),
        user=_user(body),
        conversation_id=body_text(body, "conversation_id") or None,
    )
    if not result.ok:
        return result

    answer = result.payload.get("answer", "")
    needs_more = needs_more_conversation(answer)
    return ProxyResponse(
        status=200,
        payload={
            "summary": "" if needs_more else answer.strip(),
            "conversation_id": result.payload.get("conversation_id"),
            "needsMoreConversation": needs_more,
        },
    )


def dify_structure_examples(body: Mapping[str, Any]) -> ProxyResponse:
    """Ask the structure bot for one short example story per structure."""

    character = _mapping(body, "character")
    plot = _mapping(body, "plot")
    result = send_chat_message(
        "structure",
        build_structure_examples_query(character, plot),
        user=_user(body),
    )
    if not result.ok:
        return result

    data, parse_error = parse_json_answer(result.payload.get("answer", ""))
    if parse_error:
        logger.error("Structure examples were not valid JSON: %s", parse_error)
        return error_response(500, f"Failed to parse structure examples: {parse_error}")

    examples: dict[str, Any] = {}
    for structure_type in STRUCTURE_TYPES:
        entry = data.get(structure_type)
        story = entry.get("story") if isinstance(entry, Mapping) else entry
        if isinstance(story, str) and story.strip():
            examples[structure_type] = {"story": story.strip()}

    if not examples:
        return error_response(500, "Structure examples were missing from the response")
    return ProxyResponse(status=200, payload=examples)


def dify_progress_mentor(body: Mapping[str, Any]) -> ProxyResponse:
    action = body_text(body, "action") or "working on the story"
    stage = body_text(body, "stage") or "story"
    result = send_chat_message(
        "mentor",
        build_progress_mentor_query(action, stage, _mapping(body, "context")),
        user=_user(body),
    )
    if not result.ok:
        return result
    return ProxyResponse(status=200, payload={"message": result.payload.get("answer", "").strip()})


def dify_writing_hint(body: Mapping[str, Any]) -> ProxyResponse:
    section = body_text(body, "section")
    if not section:
        return error_response(400, "Section cannot be empty")

    structure = _mapping(body, "structure") or {}
    result = send_chat_message(
        "writing",
        build_writing_hint_query(
            section=section,
            draft=body_text(body, "draft"),
            character=_mapping(body, "character"),
            plot=_mapping(body, "plot"),
            structure_name=structure.get("name") or structure.get("type"),
        ),
        user=_user(body),
        conversation_id=body_text(body, "conversation_id") or None,
    )
    if not result.ok:
        return result
    return ProxyResponse(
        status=200,
        payload={
            "hint": result.payload.get("answer", "").strip(),
            "conversation_id": result.payload.get("conversation_id"),
        },
    )


def save_interaction(body: Mapping[str, Any], *, client_ip: str | None = None) -> ProxyResponse:
    """Store an interaction; review-stage stories are also saved as a work."""

    user_id = body_text(body, "user_id")
    if not user_id:
        return error_response(400, "user_id is required")

    story = body_text(body, "story") or None
    character = _mapping(body, "character")
    work_id = body_text(body, "workId") or None
    if story and not work_id:
        work_id, _ = generate_work_id(user_id=user_id, character_name=(character or {}).get("name"))

    record = record_interaction(
        user_id=user_id,
        stage=body_text(body, "stage") or None,
        input=_mapping(body, "input"),
        output=_mapping(body, "output"),
        story=story,
        character=character,
        plot=_mapping(body, "plot"),
        structure=_mapping(body, "structure"),
        work_id=work_id,
        client_ip=client_ip,
    )
    saved = record is not None and (not story or record.work_id is not None)
    return ProxyResponse(status=200, payload={"success": saved, "workId": work_id})


__all__ = [
    "dify_chat",
    "dify_plot_summary",
    "dify_progress_mentor",
    "dify_structure_examples",
    "dify_writing_hint",
    "needs_more_conversation",
    "parse_json_answer",
    "save_interaction",
]
