"""Dify chat-app transport: one blocking ``chat-messages`` call per request."""
from __future__ import annotations

import logging
import os
from typing import Any, Mapping

import requests
from dotenv import load_dotenv

from app_constants import DEFAULT_USER_ID
from services.proxy_common import (
    SERVER_ERROR_MESSAGE,
    ProxyResponse,
    env_timeout,
    error_response,
)

load_dotenv()

logger = logging.getLogger(__name__)

_API_BASE_ENV = (os.getenv("DIFY_API_BASE") or "").strip().rstrip("/")
DIFY_API_BASE = _API_BASE_ENV or "https://api.dify.ai/v1"

DIFY_TIMEOUT_SECONDS = env_timeout("DIFY_TIMEOUT_SECONDS", 120.0)

# Each bot is a separate Dify app with its own key.
DIFY_APP_KEY_ENVS: Mapping[str, str] = {
    "brainstorm": "DIFY_BRAINSTORM_API_KEY",
    "summary": "DIFY_SUMMARY_API_KEY",
    "structure": "DIFY_STRUCTURE_API_KEY",
    "mentor": "DIFY_MENTOR_API_KEY",
    "writing": "DIFY_WRITING_API_KEY",
}
DIFY_APP_KEYS: dict[str, str] = {
    app: (os.getenv(env_name) or "").strip() for app, env_name in DIFY_APP_KEY_ENVS.items()
}

TIMEOUT_MESSAGE = "Dify request timeout. Please try again."


def missing_api_key_error(app: str) -> ProxyResponse:
    return error_response(500, f"{DIFY_APP_KEY_ENVS[app]} is not configured (.env).")


def api_key_for(app: str) -> str:
    if app not in DIFY_APP_KEY_ENVS:
        raise ValueError(f"Unknown Dify app: {app}")
    return DIFY_APP_KEYS.get(app, "")


def _upstream_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, Mapping) and data.get("message"):
        return str(data["message"])
    return response.text


def send_chat_message(
    app: str,
    query: str,
    *,
    user: str | None,
    conversation_id: str | None = None,
    inputs: Mapping[str, Any] | None = None,
) -> ProxyResponse:
    """Send ``query`` to the Dify app and return ``{answer, conversation_id}``."""

    api_key = api_key_for(app)
    if not api_key:
        return missing_api_key_error(app)

    request_body: dict[str, Any] = {
        "inputs": dict(inputs or {}),
        "query": query,
        "response_mode": "blocking",
        "user": (user or "").strip() or DEFAULT_USER_ID,
    }
    if conversation_id:
        request_body["conversation_id"] = conversation_id

    url = f"{DIFY_API_BASE}/chat-messages"
    logger.debug("Sending %s query to Dify (%s chars, conversation %s)", app, len(query), conversation_id)
    try:
        response = requests.post(
            url,
            json=request_body,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            timeout=DIFY_TIMEOUT_SECONDS,
        )
    except requests.Timeout:
        logger.error("Dify %s request timed out after %ss", app, DIFY_TIMEOUT_SECONDS)
        return error_response(504, TIMEOUT_MESSAGE)
    except requests.RequestException as exc:
        logger.error("Dify %s request failed: %s", app, exc)
        return error_response(500, SERVER_ERROR_MESSAGE)

    if not response.ok:
        message = _upstream_message(response)
        logger.error("Dify API error (%s): %s %s", app, response.status_code, message)
        return error_response(response.status_code, f"Dify request failed ({response.status_code}): {message}")

    try:
        data = response.json()
    except ValueError:
        logger.error("Dify %s returned a non-JSON body", app)
        return error_response(500, SERVER_ERROR_MESSAGE)

    if not isinstance(data, Mapping):
        return error_response(500, SERVER_ERROR_MESSAGE)

    return ProxyResponse(
        status=200,
        payload={
            "answer": str(data.get("answer") or ""),
            "conversation_id": data.get("conversation_id") or conversation_id,
        },
    )


__all__ = [
    "DIFY_API_BASE",
    "DIFY_APP_KEYS",
    "DIFY_APP_KEY_ENVS",
    "DIFY_TIMEOUT_SECONDS",
    "api_key_for",
    "missing_api_key_error",
    "send_chat_message",
]
