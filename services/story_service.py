"""Story assembly and text export for the review stage."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

DOWNLOAD_FOOTER = "Created with Story Writer"
DOWNLOAD_MIME = "text/plain"


@dataclass(slots=True)
class StoryBundle:
    character: Mapping[str, Any]
    plot: Mapping[str, Any]
    structure: Mapping[str, Any] | None
    story: str
    traits: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_state(
        cls,
        *,
        character: Mapping[str, Any] | None,
        plot: Mapping[str, Any] | None,
        structure: Mapping[str, Any] | None,
        story: str | None,
    ) -> "StoryBundle":
        character = dict(character or {})
        traits = character.get("traits") or ()
        if isinstance(traits, str):
            traits = [traits]
        return cls(
            character=character,
            plot=dict(plot or {}),
            structure=dict(structure) if structure else None,
            story=(story or "").strip(),
            traits=tuple(str(trait) for trait in traits),
        )

    @property
    def character_name(self) -> str:
        return str(self.character.get("name") or "").strip()

    @property
    def structure_type(self) -> str:
        if not self.structure:
            return ""
        return str(self.structure.get("type") or "")


@dataclass(slots=True)
class StoryDownload:
    filename: str
    content: str
    mime: str = DOWNLOAD_MIME


def join_story_sections(sections: Mapping[str, str] | Sequence[str]) -> str:
    """Join non-empty section drafts with a blank line between them."""

    values = sections.values() if isinstance(sections, Mapping) else sections
    return "\n\n".join(text.strip() for text in values if text and text.strip())


def build_story_title(bundle: StoryBundle) -> str:
    return f"{bundle.character_name}'s Adventure"


def build_story_subtitle(bundle: StoryBundle) -> str:
    return f"{bundle.plot.get('setting') or ''} • {bundle.structure_type}"


def _download_filename(name: str) -> str:
    # Keep the name readable but drop path separators and control characters.
    cleaned = re.sub(r"[\\/:*?\"<>|\x00-\x1f]+", "", name).strip()
    return f"{cleaned}-story.txt"


def build_story_download(bundle: StoryBundle) -> StoryDownload:
    name = bundle.character_name
    species = str(bundle.character.get("species") or "").strip()

    lines = [
        f"STORY: {build_story_title(bundle)}",
        "",
        f"CHARACTER: {name}",
    ]
    if species:
        lines.append(f"Species: {species}")
    lines.extend(
        [
            f"Traits: {', '.join(bundle.traits)}",
            "",
            f"SETTING: {bundle.plot.get('setting') or ''}",
            f"CONFLICT: {bundle.plot.get('conflict') or ''}",
            f"GOAL: {bundle.plot.get('goal') or ''}",
            "",
            f"STORY TYPE: {bundle.structure_type}",
            "",
            "---",
            "",
            bundle.story,
            "",
            "---",
            DOWNLOAD_FOOTER,
        ]
    )
    return StoryDownload(filename=_download_filename(name), content="\n".join(lines).strip())


__all__ = [
    "DOWNLOAD_FOOTER",
    "StoryBundle",
    "StoryDownload",
    "build_story_download",
    "build_story_subtitle",
    "build_story_title",
    "join_story_sections",
]
