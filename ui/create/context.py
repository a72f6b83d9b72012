"""Shared context objects for the create flow."""
from __future__ import annotations

from dataclasses import dataclass

from session_proxy import StorySessionProxy


@dataclass(slots=True)
class CreatePageContext:
    session: StorySessionProxy
    user_id: str | None
    logging_enabled: bool


__all__ = ["CreatePageContext"]
