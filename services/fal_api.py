"""fal.ai transport and the image/video generation proxy handlers."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Mapping, Tuple

import requests
from dotenv import load_dotenv

from app_constants import DEFAULT_ASPECT_RATIO, DEFAULT_STORY_VIDEO_DURATION
from interaction_log import log_api_call
from prompts.story import build_story_video_prompt
from services.proxy_common import (
    SERVER_ERROR_MESSAGE,
    ProxyResponse,
    body_text,
    env_timeout,
    error_response,
)

load_dotenv()

logger = logging.getLogger(__name__)

FAL_KEY = (os.getenv("FAL_KEY") or "").strip()

_IMAGE_ENDPOINT_ENV = (os.getenv("FAL_IMAGE_ENDPOINT") or "").strip()
FAL_IMAGE_ENDPOINT = _IMAGE_ENDPOINT_ENV or "https://fal.run/fal-ai/flux-schnell"

_STORY_VIDEO_ENDPOINT_ENV = (os.getenv("FAL_STORY_VIDEO_ENDPOINT") or "").strip()
FAL_STORY_VIDEO_ENDPOINT = _STORY_VIDEO_ENDPOINT_ENV or "https://fal.run/fal-ai/kling-video/v1/standard/text-to-video"

FAL_TIMEOUT_SECONDS = env_timeout("FAL_TIMEOUT_SECONDS", 300.0)

# Short clip in the fast preset keeps preview cost low.
NUM_FRAMES = 25
NUM_INFERENCE_STEPS = 6

DEFAULT_IMAGE_SIZE = "landscape_16_9"
ASPECT_RATIO_IMAGE_SIZES: Mapping[str, str] = {
    "1:1": "square_hd",
    "16:9": "landscape_16_9",
    "9:16": "portrait_16_9",
    "4:3": "landscape_4_3",
}

TIMEOUT_MESSAGE = "Video generation timeout. Please try again."


def missing_api_key_error() -> ProxyResponse:
    return error_response(500, "FAL_KEY is not configured (.env).")


def image_size_for_aspect_ratio(aspect_ratio: str | None) -> str:
    return ASPECT_RATIO_IMAGE_SIZES.get((aspect_ratio or "").strip(), DEFAULT_IMAGE_SIZE)


def extract_media_url(result: Any) -> str | None:
    """Pull the generated media URL out of the provider's response.

    Models answer in different shapes: ``{"video": {"url"}}``,
    ``{"video_url"}``, ``{"url"}``, or an ``images`` list for still models.
    """

    if not isinstance(result, Mapping):
        return None

    video = result.get("video")
    candidates = [
        video.get("url") if isinstance(video, Mapping) else None,
        result.get("video_url"),
        result.get("url"),
    ]
    images = result.get("images")
    if isinstance(images, list) and images and isinstance(images[0], Mapping):
        candidates.append(images[0].get("url"))

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _post_to_fal(
    endpoint: str,
    request_body: Mapping[str, Any],
    *,
    failure_label: str,
) -> Tuple[dict | None, ProxyResponse | None]:
    logger.debug("Sending request to fal.ai %s: %s", endpoint, json.dumps(request_body, ensure_ascii=False))
    try:
        response = requests.post(
            endpoint,
            json=dict(request_body),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Key {FAL_KEY}",
            },
            timeout=FAL_TIMEOUT_SECONDS,
        )
    except requests.Timeout:
        logger.error("fal.ai request to %s timed out after %ss", endpoint, FAL_TIMEOUT_SECONDS)
        return None, error_response(504, TIMEOUT_MESSAGE)

    if not response.ok:
        error_text = response.text
        logger.error("Fal.ai API error: %s %s", response.status_code, error_text)
        return None, error_response(
            response.status_code,
            f"Failed to generate {failure_label} ({response.status_code}): {error_text}",
        )

    result = response.json()
    if not isinstance(result, dict):
        result = {"result": result}
    logger.debug("Fal.ai response: %s", json.dumps(result, ensure_ascii=False))
    return result, None


def _missing_url_error(result: Mapping[str, Any]) -> ProxyResponse:
    logger.error("No video URL in response: %s", json.dumps(result, ensure_ascii=False))
    return error_response(
        500,
        "Failed to get video URL from response. Response: " + json.dumps(result, ensure_ascii=False),
    )


def generate_video(body: Mapping[str, Any]) -> ProxyResponse:
    """Proxy a short illustrative clip (or still) request to fal.ai.

    Inbound: ``prompt``, ``aspect_ratio`` (default 16:9), ``user_id`` and
    ``stage`` (default ``character``). Returns ``videoUrl``/``imageUrl``.
    """

    try:
        prompt = body_text(body, "prompt")
        aspect_ratio = body_text(body, "aspect_ratio") or DEFAULT_ASPECT_RATIO
        user_id = body_text(body, "user_id") or None
        stage = body_text(body, "stage") or "character"

        logger.info("Received video prompt (%s chars, aspect ratio %s)", len(prompt), aspect_ratio)
        if not prompt:
            logger.error("Invalid prompt: %r", body.get("prompt") if isinstance(body, Mapping) else body)
            return error_response(400, "Prompt cannot be empty")

        if not FAL_KEY:
            return missing_api_key_error()

        request_body = {
            "prompt": prompt,
            "image_size": image_size_for_aspect_ratio(aspect_ratio),
            "num_frames": NUM_FRAMES,
            "num_inference_steps": NUM_INFERENCE_STEPS,
        }
        result, failure = _post_to_fal(FAL_IMAGE_ENDPOINT, request_body, failure_label="video")
        if failure is not None:
            return failure

        video_url = extract_media_url(result)
        if not video_url:
            return _missing_url_error(result)

        description = result.get("description") or ""
        log_api_call(
            user_id,
            stage,
            "/api/generate-video (Fal.ai flux-schnell)",
            {"prompt": prompt, "aspect_ratio": aspect_ratio},
            {"videoUrl": video_url, "description": description},
        )
        return ProxyResponse(
            status=200,
            payload={"videoUrl": video_url, "imageUrl": video_url, "description": description},
        )
    except Exception:
        logger.exception("Error generating video")
        return error_response(500, SERVER_ERROR_MESSAGE)


def generate_story_video(body: Mapping[str, Any]) -> ProxyResponse:
    """Proxy a text-to-video request that animates the finished story."""

    try:
        story = body_text(body, "story")
        if not story:
            return error_response(400, "Story cannot be empty")
        if not FAL_KEY:
            return missing_api_key_error()

        character = body.get("character") if isinstance(body.get("character"), Mapping) else None
        plot = body.get("plot") if isinstance(body.get("plot"), Mapping) else None
        duration = str(body.get("duration") or DEFAULT_STORY_VIDEO_DURATION).strip()
        user_id = body_text(body, "user_id") or None

        prompt = build_story_video_prompt(story, character, plot)
        request_body = {
            "prompt": prompt,
            "duration": duration,
            "aspect_ratio": DEFAULT_ASPECT_RATIO,
        }
        result, failure = _post_to_fal(FAL_STORY_VIDEO_ENDPOINT, request_body, failure_label="story video")
        if failure is not None:
            return failure

        video_url = extract_media_url(result)
        if not video_url:
            return _missing_url_error(result)

        log_api_call(
            user_id,
            "review",
            "/api/generate-story-video (Fal.ai text-to-video)",
            {"prompt": prompt, "duration": duration},
            {"videoUrl": video_url},
        )
        return ProxyResponse(status=200, payload={"videoUrl": video_url, "description": result.get("description") or ""})
    except Exception:
        logger.exception("Error generating story video")
        return error_response(500, SERVER_ERROR_MESSAGE)


__all__ = [
    "ASPECT_RATIO_IMAGE_SIZES",
    "DEFAULT_IMAGE_SIZE",
    "FAL_IMAGE_ENDPOINT",
    "FAL_KEY",
    "FAL_STORY_VIDEO_ENDPOINT",
    "FAL_TIMEOUT_SECONDS",
    "extract_media_url",
    "generate_story_video",
    "generate_video",
    "image_size_for_aspect_ratio",
    "missing_api_key_error",
]
