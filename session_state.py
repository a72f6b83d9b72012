"""Session state helpers for the Streamlit app."""
from __future__ import annotations

import uuid
from typing import Any, Iterable

try:  # pragma: no cover - allows importing without Streamlit in tests
    import streamlit as st
except ModuleNotFoundError:  # pragma: no cover - test fallback
    from types import SimpleNamespace

    st = SimpleNamespace(session_state={})

from app_constants import STORY_STAGES
from session_proxy import StorySessionProxy


_STATE_DEFAULTS: dict[str, Any] = {
    # Flow
    "step": 0,
    "user_id": None,
    "work_id": None,

    # Stage 1: character
    "character": None,
    "character_image_url": None,
    "character_image_error": None,
    "is_generating_character_image": False,

    # Stage 2: plot brainstorm
    "plot_messages": None,
    "plot_conversation_id": None,
    "summary_conversation_id": None,
    "plot": None,
    "plot_summary_done": False,
    "plot_updated_fields": None,
    "plot_error": None,
    "plot_input": "",
    "is_sending_message": False,
    "is_summarizing": False,

    # Stage 3: structure
    "structure_examples": None,
    "structure_has_videos": False,
    "structure_mentor_message": None,
    "structure_error": None,
    "structure_page_idx": 0,
    "selected_structure_type": None,
    "selected_structure_media": None,
    "is_generating_examples": False,

    # Stage 4: writing
    "writing_sections": None,
    "writing_hints": None,
    "writing_hint_error": None,
    "writing_conversation_id": None,

    # Stage 5: review
    "story_text": None,
    "saved_story_signature": None,
    "story_video_url": None,
    "story_video_error": None,
    "is_generating_story_video": False,
}

# Keys owned by each stage; leaving a stage backwards clears everything after it.
_STAGE_KEYS: dict[str, tuple[str, ...]] = {
    "character": (
        "work_id",
        "character",
        "character_image_url",
        "character_image_error",
        "is_generating_character_image",
    ),
    "plot": (
        "plot_messages",
        "plot_conversation_id",
        "summary_conversation_id",
        "plot",
        "plot_summary_done",
        "plot_updated_fields",
        "plot_error",
        "plot_input",
        "is_sending_message",
        "is_summarizing",
    ),
    "structure": (
        "structure_examples",
        "structure_has_videos",
        "structure_mentor_message",
        "structure_error",
        "structure_page_idx",
        "selected_structure_type",
        "selected_structure_media",
        "is_generating_examples",
    ),
    "writing": (
        "writing_sections",
        "writing_hints",
        "writing_hint_error",
        "writing_conversation_id",
    ),
    "review": (
        "story_text",
        "saved_story_signature",
        "story_video_url",
        "story_video_error",
        "is_generating_story_video",
    ),
}


def _proxy() -> StorySessionProxy:
    """Return a proxy around the current Streamlit session state."""

    return StorySessionProxy(st.session_state)


def ensure_state() -> None:
    proxy = _proxy()
    for key, default in _STATE_DEFAULTS.items():
        proxy.setdefault(key, default)

    if not proxy.get("user_id"):
        proxy["user_id"] = f"student-{uuid.uuid4().hex[:12]}"


def go_step(step: int) -> None:
    proxy = _proxy()
    proxy.step = max(0, min(int(step), len(STORY_STAGES)))


def stage_name(step: int) -> str | None:
    if 1 <= step <= len(STORY_STAGES):
        return STORY_STAGES[step - 1]
    return None


def _stage_keys_from(index: int) -> Iterable[str]:
    for stage in STORY_STAGES[index:]:
        yield from _STAGE_KEYS[stage]


def clear_stages_from(stage: str) -> None:
    """Reset ``stage`` and every later stage back to their defaults."""

    proxy = _proxy()
    index = STORY_STAGES.index(stage)
    for key in _stage_keys_from(index):
        proxy[key] = _STATE_DEFAULTS[key]


def reset_story_video() -> None:
    proxy = _proxy()
    proxy.reset_keys("story_video_url", "story_video_error")
    proxy.set_flag("is_generating_story_video", False)


def reset_all_state() -> None:
    """Start over: drop every wizard key but keep the session's user id."""

    proxy = _proxy()
    for key in _stage_keys_from(0):
        proxy.pop(key, None)
    proxy.step = 0
    ensure_state()


__all__ = [
    "clear_stages_from",
    "ensure_state",
    "go_step",
    "reset_all_state",
    "reset_story_video",
    "stage_name",
    "StorySessionProxy",
]
