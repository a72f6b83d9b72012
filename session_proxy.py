"""Session proxy for wrapping Streamlit's session state mapping."""
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Iterator

from app_constants import find_structure
from story_brainstorm import PlotDraft


class StorySessionProxy:
    """Lightweight view over a Streamlit ``session_state`` mapping."""

    def __init__(self, backing: MutableMapping[str, Any]):
        self._backing = backing

    # Basic mapping compatibility -------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        return self._backing[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._backing[key] = value

    def __contains__(self, key: object) -> bool:  # pragma: no cover - mapping helper
        return key in self._backing

    def get(self, key: str, default: Any = None) -> Any:
        return self._backing.get(key, default)

    def setdefault(self, key: str, default: Any) -> Any:
        return self._backing.setdefault(key, default)

    def update(self, values: MutableMapping[str, Any]) -> None:
        self._backing.update(values)

    def pop(self, key: str, default: Any | None = None) -> Any:
        return self._backing.pop(key, default)

    # Convenience accessors -------------------------------------------------------
    @property
    def step(self) -> int:
        return int(self._backing.get("step", 0) or 0)

    @step.setter
    def step(self, value: int) -> None:
        self._backing["step"] = int(value)

    @property
    def user_id(self) -> str | None:
        value = self._backing.get("user_id")
        return str(value) if value else None

    @property
    def character(self) -> dict[str, Any]:
        value = self._backing.get("character")
        return dict(value) if isinstance(value, MutableMapping) else {}

    @character.setter
    def character(self, value: dict[str, Any]) -> None:
        self._backing["character"] = dict(value)

    @property
    def plot(self) -> PlotDraft:
        return PlotDraft.from_mapping(self._backing.get("plot"))

    @plot.setter
    def plot(self, value: PlotDraft) -> None:
        self._backing["plot"] = value.as_dict()

    @property
    def plot_messages(self) -> list[dict[str, Any]]:
        messages = self._backing.get("plot_messages")
        if not isinstance(messages, list):
            messages = []
            self._backing["plot_messages"] = messages
        return messages

    @property
    def selected_structure(self) -> dict[str, Any] | None:
        return find_structure(self._backing.get("selected_structure_type"))

    @property
    def story_text(self) -> str:
        return str(self._backing.get("story_text") or "")

    def set_flag(self, name: str, active: bool) -> None:
        self._backing[name] = bool(active)

    def reset_keys(self, *keys: str) -> None:
        for key in keys:
            self._backing[key] = None


__all__ = ["StorySessionProxy"]
