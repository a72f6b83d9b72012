"""Result type and small helpers shared by the third-party proxy handlers."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

SERVER_ERROR_MESSAGE = "Server error. Please try again later."


@dataclass(frozen=True)
class ProxyResponse:
    """HTTP status plus the JSON body relayed to the browser."""

    status: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300 and "error" not in self.payload

    @property
    def error(self) -> str | None:
        value = self.payload.get("error")
        return str(value) if value else None

    def as_result(self) -> dict[str, Any]:
        """Dict form used by the wizard: the payload, or ``{"error", "status"}``."""

        if self.ok:
            return dict(self.payload)
        return {"error": self.error or SERVER_ERROR_MESSAGE, "status": self.status}


def error_response(status: int, message: str) -> ProxyResponse:
    return ProxyResponse(status=status, payload={"error": message})


def env_timeout(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        value = float(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


def body_text(body: Any, key: str) -> str:
    """Trimmed string field from an inbound JSON body ('' when absent or not a string)."""

    if not isinstance(body, Mapping):
        return ""
    value = body.get(key)
    return value.strip() if isinstance(value, str) else ""


__all__ = ["ProxyResponse", "SERVER_ERROR_MESSAGE", "body_text", "env_timeout", "error_response"]
