"""Wizard-facing client: calls the proxy handlers and shapes results for the UI."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence

from app_constants import (
    DEFAULT_STORY_VIDEO_DURATION,
    DEFAULT_USER_ID,
    STRUCTURES,
    placeholder_media_url,
)
from prompts.story import (
    build_brainstorm_prompt,
    build_character_image_prompt,
    build_default_example_story,
    build_structure_video_prompt,
)
from services import fal_api, story_proxy
from story_brainstorm import build_ai_message

logger = logging.getLogger(__name__)

OPENING_FALLBACK = "Hello! Let's start brainstorming your plot."
EXAMPLE_STORY_FALLBACK = "Example story"


@dataclass(slots=True)
class StoryExample:
    structure_type: str
    story: str
    image_url: str
    video_url: str | None = None

    @property
    def has_video(self) -> bool:
        return is_real_media_url(self.video_url)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_real_media_url(url: str | None) -> bool:
    """False for empty, non-http and placeholder-avatar URLs."""

    if not url:
        return False
    return url.startswith(("http://", "https://")) and "dicebear" not in url


def media_url_from_payload(payload: Mapping[str, Any]) -> str:
    video = payload.get("video")
    candidates = (
        payload.get("videoUrl"),
        payload.get("imageUrl"),
        video.get("url") if isinstance(video, Mapping) else None,
        payload.get("video_url"),
        video if isinstance(video, str) else None,
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return ""


def _user(user_id: str | None) -> str:
    return (user_id or "").strip() or DEFAULT_USER_ID


def start_brainstorm(character: Mapping[str, Any] | None, *, user_id: str | None) -> dict:
    """Open the brainstorm conversation and return the robot's first message."""

    result = story_proxy.dify_chat(
        {
            "message": build_brainstorm_prompt(character),
            "user_id": _user(user_id),
        }
    ).as_result()
    if "error" in result:
        return result
    return {
        "message": build_ai_message(result.get("answer", ""), fallback=OPENING_FALLBACK),
        "conversation_id": result.get("conversation_id"),
    }


def send_brainstorm_message(text: str, *, conversation_id: str | None, user_id: str | None) -> dict:
    result = story_proxy.dify_chat(
        {
            "message": text,
            "conversation_id": conversation_id,
            "user_id": _user(user_id),
        }
    ).as_result()
    if "error" in result:
        return result
    return {
        "message": build_ai_message(result.get("answer", "")),
        "conversation_id": result.get("conversation_id") or conversation_id,
    }


def summarize_plot(
    messages: Sequence[Mapping[str, Any]],
    *,
    conversation_id: str | None,
    user_id: str | None,
) -> dict:
    """Summary payload for ``apply_plot_summary``; failures come back as ``{"error"}``."""

    if not messages:
        logger.debug("No messages to summarize")
        return {"error": "No messages to summarize"}

    history = [{"role": m.get("role"), "content": m.get("content")} for m in messages]
    logger.debug("Calling plot summary with %s messages", len(history))
    try:
        return story_proxy.dify_plot_summary(
            {
                "conversation_history": history,
                "conversation_id": conversation_id,
                "user_id": _user(user_id),
            }
        ).as_result()
    except Exception as exc:
        logger.error("Error summarizing plot: %s", exc)
        return {"error": str(exc)}


def fetch_mentor_message(
    action: str,
    *,
    stage: str,
    context: Mapping[str, Any] | None,
    user_id: str | None,
) -> str | None:
    try:
        result = story_proxy.dify_progress_mentor(
            {
                "action": action,
                "stage": stage,
                "context": dict(context or {}),
                "user_id": _user(user_id),
            }
        )
    except Exception as exc:
        logger.error("Error fetching mentor message: %s", exc)
        return None
    if not result.ok:
        return None
    return result.payload.get("message") or None


def generate_character_image(character: Mapping[str, Any], *, user_id: str | None) -> dict:
    if not (character.get("name") or "").strip():
        return {"error": "Give your character a name first."}
    result = fal_api.generate_video(
        {
            "prompt": build_character_image_prompt(character),
            "aspect_ratio": "1:1",
            "user_id": user_id,
            "stage": "character",
        }
    ).as_result()
    if "error" in result:
        return result
    image_url = media_url_from_payload(result)
    if not image_url:
        return {"error": "Failed to get image URL"}
    return {"imageUrl": image_url}


def _generate_preview(
    structure: Mapping[str, Any],
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    user_id: str | None,
) -> str:
    structure_type = structure["type"]
    prompt = build_structure_video_prompt(character, plot, structure["name"])
    logger.debug("[%s] Video prompt: %s", structure_type, prompt)

    result = fal_api.generate_video(
        {
            "prompt": prompt,
            "aspect_ratio": "16:9",
            "user_id": user_id,
            "stage": "structure",
        }
    )
    if not result.ok:
        logger.error("[%s] Video generation failed: %s %s", structure_type, result.status, result.error)
        return ""

    url = media_url_from_payload(result.payload)
    if not url:
        logger.error("[%s] No video URL found in response: %s", structure_type, sorted(result.payload))
    elif not url.startswith(("http://", "https://")):
        logger.warning("[%s] Video URL does not start with http: %s", structure_type, url)
    return url


def _example_for(structure_type: str, story: str, video_url: str | None) -> StoryExample:
    if not video_url or "dicebear" in video_url:
        logger.warning("[%s] No valid video URL, using placeholder", structure_type)
        return StoryExample(
            structure_type=structure_type,
            story=story,
            image_url=placeholder_media_url(structure_type),
        )
    return StoryExample(structure_type=structure_type, story=story, image_url=video_url, video_url=video_url)


def generate_structure_examples(
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    *,
    user_id: str | None,
) -> dict:
    """Example stories for the three structures, each with a preview video.

    The three preview requests run concurrently and are independent: a
    failure or a missing URL only swaps that structure's media for a
    placeholder. If the stories themselves cannot be generated, every
    structure gets the default story and a placeholder.
    """

    stories = story_proxy.dify_structure_examples(
        {"character": dict(character or {}), "plot": dict(plot or {}), "user_id": _user(user_id)}
    ).as_result()
    if "error" in stories:
        logger.error("Error generating examples: %s", stories["error"])
        default_story = build_default_example_story(character, plot)
        examples = [
            StoryExample(
                structure_type=structure["type"],
                story=default_story,
                image_url=placeholder_media_url(structure["type"]),
            )
            for structure in STRUCTURES
        ]
        return {"examples": examples, "has_videos": False, "error": stories["error"]}

    with ThreadPoolExecutor(max_workers=len(STRUCTURES)) as executor:
        futures = [
            executor.submit(_generate_preview, structure, character, plot, user_id)
            for structure in STRUCTURES
        ]

        examples: list[StoryExample] = []
        for structure, future in zip(STRUCTURES, futures):
            structure_type = structure["type"]
            story = (stories.get(structure_type) or {}).get("story") or EXAMPLE_STORY_FALLBACK
            try:
                video_url = future.result()
            except Exception as exc:
                logger.error("[%s] Video generation failed: %s", structure_type, exc)
                video_url = ""
            examples.append(_example_for(structure_type, story, video_url))

    return {"examples": examples, "has_videos": any(example.has_video for example in examples)}


def request_writing_hint(
    *,
    section: str,
    draft: str | None,
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    structure: Mapping[str, Any] | None,
    conversation_id: str | None,
    user_id: str | None,
) -> dict:
    return story_proxy.dify_writing_hint(
        {
            "section": section,
            "draft": draft or "",
            "character": dict(character or {}),
            "plot": dict(plot or {}),
            "structure": dict(structure or {}),
            "conversation_id": conversation_id,
            "user_id": _user(user_id),
        }
    ).as_result()


def generate_story_video(
    story: str,
    *,
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    user_id: str | None,
    duration: str = DEFAULT_STORY_VIDEO_DURATION,
) -> dict:
    if not (story or "").strip():
        return {"error": "Please write a story first"}
    result = fal_api.generate_story_video(
        {
            "story": story,
            "character": dict(character or {}),
            "plot": dict(plot or {}),
            "user_id": user_id,
            "duration": duration,
        }
    ).as_result()
    if "error" in result:
        return result
    if not result.get("videoUrl"):
        return {"error": "Failed to get video URL"}
    return {"videoUrl": result["videoUrl"]}


def save_interaction(payload: Mapping[str, Any]) -> dict:
    """Fire-and-forget save; errors are logged, never raised."""

    try:
        return story_proxy.save_interaction(payload).as_result()
    except Exception as exc:
        logger.error("Error saving interaction: %s", exc)
        return {"error": str(exc)}


__all__ = [
    "EXAMPLE_STORY_FALLBACK",
    "OPENING_FALLBACK",
    "StoryExample",
    "fetch_mentor_message",
    "generate_character_image",
    "generate_story_video",
    "generate_structure_examples",
    "is_real_media_url",
    "media_url_from_payload",
    "request_writing_hint",
    "save_interaction",
    "send_brainstorm_message",
    "start_brainstorm",
    "summarize_plot",
]
