from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone


def _normalize(value: str | None) -> str:
    return (value or "").strip()


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_work_id(
    *,
    user_id: str | None,
    character_name: str | None,
    started_at: datetime | None = None,
) -> tuple[str, str]:
    """Return a deterministic work identifier and its UTC timestamp seed.

    The identifier combines the student, the character they created and the
    moment the character was confirmed, so re-saving the same story during a
    session updates one work instead of creating duplicates.
    """

    base_timestamp = _ensure_utc(started_at or datetime.now(timezone.utc))
    started_at_iso = base_timestamp.isoformat(timespec="microseconds").replace("+00:00", "Z")

    payload = {
        "user_id": _normalize(user_id) or "anonymous",
        "character": _normalize(character_name),
        "started_at": started_at_iso,
    }
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return digest[:32], started_at_iso


__all__ = ["generate_work_id"]
