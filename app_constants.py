"""Shared constants for the story writer wizard."""
from __future__ import annotations

from typing import Mapping

APP_TITLE = "Story Writer"

# Wizard stages in order; the index + 1 is the stage number shown in headers.
STORY_STAGES: tuple[str, ...] = ("character", "plot", "structure", "writing", "review")

STAGE_TITLES: Mapping[str, str] = {
    "character": "Create Your Character",
    "plot": "Brainstorm Your Plot",
    "structure": "Choose Story Structure",
    "writing": "Write Your Story",
    "review": "Your Story is Complete!",
}

STRUCTURES: tuple[dict, ...] = (
    {
        "type": "freytag",
        "name": "Freytag's Pyramid",
        "desc": "A classic five-act structure with exposition, rising action, climax, falling action, and resolution",
        "outline": ["Exposition", "Rising Action", "Climax", "Falling Action", "Resolution"],
    },
    {
        "type": "threeAct",
        "name": "Three Act Structure",
        "desc": "A simple three-part story: setup, confrontation, and resolution",
        "outline": ["Setup", "Confrontation", "Resolution"],
    },
    {
        "type": "fichtean",
        "name": "Fichtean Curve",
        "desc": "Multiple crises building tension toward a final climax",
        "outline": ["First Crisis", "Second Crisis", "Third Crisis", "Climax", "Resolution"],
    },
)

STRUCTURE_TYPES: tuple[str, ...] = tuple(item["type"] for item in STRUCTURES)

# Brainstorm pacing
MAX_PLOT_ROUNDS = 10
SUMMARY_MIN_STUDENT_ROUNDS = 1
SUGGESTION_WORD_COUNT = 6
PLOT_FIELDS: tuple[str, ...] = ("setting", "conflict", "goal")
UNKNOWN_VALUE = "unknown"

DEFAULT_USER_ID = "default-user"
DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_STORY_VIDEO_DURATION = "5"

PLACEHOLDER_MEDIA_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"

SPECIES_OPTIONS: tuple[str, ...] = (
    "Boy",
    "Girl",
    "Cat",
    "Dog",
    "Dragon",
    "Rabbit",
    "Robot",
    "Unicorn",
    "Fox",
    "Owl",
)

TRAIT_OPTIONS: tuple[str, ...] = (
    "Brave",
    "Curious",
    "Kind",
    "Funny",
    "Shy",
    "Clever",
    "Stubborn",
    "Cheerful",
    "Creative",
    "Loyal",
)


def find_structure(structure_type: str | None) -> dict | None:
    for structure in STRUCTURES:
        if structure["type"] == structure_type:
            return structure
    return None


def placeholder_media_url(seed: str) -> str:
    return PLACEHOLDER_MEDIA_URL.format(seed=seed)


__all__ = [
    "APP_TITLE",
    "STORY_STAGES",
    "STAGE_TITLES",
    "STRUCTURES",
    "STRUCTURE_TYPES",
    "MAX_PLOT_ROUNDS",
    "SUMMARY_MIN_STUDENT_ROUNDS",
    "SUGGESTION_WORD_COUNT",
    "PLOT_FIELDS",
    "UNKNOWN_VALUE",
    "DEFAULT_USER_ID",
    "DEFAULT_ASPECT_RATIO",
    "DEFAULT_STORY_VIDEO_DURATION",
    "PLACEHOLDER_MEDIA_URL",
    "SPECIES_OPTIONS",
    "TRAIT_OPTIONS",
    "find_structure",
    "placeholder_media_url",
]
