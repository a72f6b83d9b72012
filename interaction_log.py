"""Best-effort interaction logging backed by Firestore."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping, MutableMapping

from google_credentials import get_service_account_credentials

try:  # pragma: no cover - optional dependency checked at runtime
    from google.cloud import firestore  # type: ignore
except Exception:  # pragma: no cover - gracefully handle missing package
    firestore = None  # type: ignore

_LOGGER = logging.getLogger(__name__)

INTERACTION_LOG_ENABLED = (
    os.getenv("INTERACTION_LOG_ENABLED", "true").strip().lower() not in {"0", "false", "no"}
)
INTERACTIONS_COLLECTION = (os.getenv("FIRESTORE_INTERACTIONS_COLLECTION") or "").strip() or "interactions"
WORKS_COLLECTION = (os.getenv("FIRESTORE_WORKS_COLLECTION") or "").strip() or "story_works"

GCP_PROJECT_ID = (os.getenv("GCP_PROJECT_ID") or "").strip() or None

_INTERACTION_LOG_ACTIVE = False
_INTERACTION_DISABLE_REASON: str | None = None


@dataclass(slots=True)
class InteractionRecord:
    """What was written for one interaction or API call."""

    id: str
    kind: str
    user_id: str
    stage: str
    timestamp: datetime
    input: Mapping[str, Any] | None
    output: Mapping[str, Any] | None
    work_id: str | None = None


def _ensure_firestore_ready() -> None:
    if firestore is None:
        raise RuntimeError("google-cloud-firestore must be installed for interaction logging")

    if GCP_PROJECT_ID:
        return

    credentials = get_service_account_credentials()
    project_id = getattr(credentials, "project_id", "") if credentials else ""
    if project_id:
        return
    raise RuntimeError(
        "Project ID for Firestore interaction logging is not configured. Set GCP_PROJECT_ID or provide credentials."
    )


@lru_cache(maxsize=1)
def _get_firestore_client():
    _ensure_firestore_ready()
    client_kwargs: MutableMapping[str, Any] = {}
    credentials = get_service_account_credentials()
    if credentials is not None:
        client_kwargs["credentials"] = credentials
    project_id = GCP_PROJECT_ID or (getattr(credentials, "project_id", "") if credentials else "")
    if project_id:
        client_kwargs["project"] = project_id
    return firestore.Client(**client_kwargs)  # type: ignore[arg-type]


def _collection(name: str):
    return _get_firestore_client().collection(name)


def _disable_logging(reason: str) -> None:
    global _INTERACTION_LOG_ACTIVE, _INTERACTION_DISABLE_REASON
    if _INTERACTION_LOG_ACTIVE:
        _LOGGER.warning("Disabling interaction logging: %s", reason)
    _INTERACTION_LOG_ACTIVE = False
    _INTERACTION_DISABLE_REASON = reason


def init_interaction_log() -> None:
    """Prepare Firestore access; failures leave logging disabled."""

    global _INTERACTION_LOG_ACTIVE, _INTERACTION_DISABLE_REASON
    if _INTERACTION_LOG_ACTIVE:
        return
    if not INTERACTION_LOG_ENABLED:
        _disable_logging("INTERACTION_LOG_ENABLED is false")
        return

    try:
        collection = _collection(INTERACTIONS_COLLECTION)
        list(collection.limit(1).stream())  # pragma: no cover - warm up
    except Exception as exc:  # pragma: no cover - surfaced through status
        _disable_logging(str(exc))
        return

    _INTERACTION_LOG_ACTIVE = True
    _INTERACTION_DISABLE_REASON = None
    _LOGGER.debug("Interaction logging enabled using Firestore collection '%s'", INTERACTIONS_COLLECTION)


def is_interaction_logging_enabled() -> bool:
    return _INTERACTION_LOG_ACTIVE


def get_interaction_logging_status() -> tuple[bool, str | None]:
    return _INTERACTION_LOG_ACTIVE, _INTERACTION_DISABLE_REASON


def _normalize_string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _write(
    *,
    kind: str,
    user_id: str | None,
    stage: str | None,
    input: Mapping[str, Any] | None,
    output: Mapping[str, Any] | None,
    extra: Mapping[str, Any] | None = None,
) -> InteractionRecord | None:
    if not _INTERACTION_LOG_ACTIVE:
        return None

    normalized_user = _normalize_string(user_id)
    if not normalized_user:
        return None

    now = datetime.now(timezone.utc)
    payload: MutableMapping[str, Any] = {
        "kind": kind,
        "user_id": normalized_user,
        "stage": _normalize_string(stage) or "unknown",
        "timestamp": now,
        "timestamp_iso": now.isoformat(),
        "input": dict(input) if input else None,
        "output": dict(output) if output else None,
    }
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})

    try:
        doc_ref = _collection(INTERACTIONS_COLLECTION).document()
        doc_ref.set(payload)
    except Exception as exc:  # pragma: no cover - avoid hard failure path in UI
        _disable_logging(str(exc))
        _LOGGER.warning("Failed to log %s for stage %s: %s", kind, payload["stage"], exc)
        return None

    return InteractionRecord(
        id=str(getattr(doc_ref, "id", "")),
        kind=kind,
        user_id=normalized_user,
        stage=payload["stage"],
        timestamp=now,
        input=payload["input"],
        output=payload["output"],
        work_id=payload.get("work_id"),
    )


def _save_work(work_id: str, user_id: str, fields: Mapping[str, Any]) -> bool:
    now = datetime.now(timezone.utc)
    document = {
        "work_id": work_id,
        "user_id": user_id,
        "updated_at": now,
        "updated_at_iso": now.isoformat(),
        **{key: value for key, value in fields.items() if value is not None},
    }
    try:
        _collection(WORKS_COLLECTION).document(work_id).set(document, merge=True)
    except Exception as exc:  # pragma: no cover - avoid hard failure path in UI
        _disable_logging(str(exc))
        _LOGGER.warning("Failed to save story work %s: %s", work_id, exc)
        return False
    return True


def record_interaction(
    *,
    user_id: str | None,
    stage: str | None,
    input: Mapping[str, Any] | None = None,
    output: Mapping[str, Any] | None = None,
    story: str | None = None,
    character: Mapping[str, Any] | None = None,
    plot: Mapping[str, Any] | None = None,
    structure: Mapping[str, Any] | None = None,
    work_id: str | None = None,
    client_ip: str | None = None,
) -> InteractionRecord | None:
    """Log a wizard interaction; a finished story is also saved as a work.

    Returns ``None`` when logging is disabled, the user is unknown, or either
    write fails. A story whose work document was not saved is never reported
    as logged. Saving the work reuses ``work_id`` so edits overwrite the
    earlier version.
    """

    if story and work_id and _INTERACTION_LOG_ACTIVE and _normalize_string(user_id):
        saved = _save_work(
            work_id,
            _normalize_string(user_id),
            {
                "story": story,
                "character": dict(character) if character else None,
                "plot": dict(plot) if plot else None,
                "structure": dict(structure) if structure else None,
            },
        )
        if not saved:
            return None

    return _write(
        kind="interaction",
        user_id=user_id,
        stage=stage,
        input=input,
        output=output,
        extra={"work_id": work_id, "client_ip": _normalize_string(client_ip) or None},
    )


def log_api_call(
    user_id: str | None,
    stage: str | None,
    endpoint: str,
    input: Mapping[str, Any] | None,
    output: Mapping[str, Any] | None,
) -> InteractionRecord | None:
    """Record a proxied third-party call (endpoint label, request, response)."""

    return _write(
        kind="api_call",
        user_id=user_id,
        stage=stage,
        input=input,
        output=output,
        extra={"endpoint": endpoint},
    )


__all__ = [
    "InteractionRecord",
    "INTERACTION_LOG_ENABLED",
    "INTERACTIONS_COLLECTION",
    "WORKS_COLLECTION",
    "GCP_PROJECT_ID",
    "get_interaction_logging_status",
    "init_interaction_log",
    "is_interaction_logging_enabled",
    "log_api_call",
    "record_interaction",
]
