from __future__ import annotations

from services.story_service import (
    DOWNLOAD_FOOTER,
    StoryBundle,
    build_story_download,
    build_story_subtitle,
    build_story_title,
    join_story_sections,
)


def _bundle(**overrides) -> StoryBundle:
    values = {
        "character": {"name": "Milo", "species": "Cat", "traits": ["Brave", "Curious"]},
        "plot": {"setting": "a magic forest", "conflict": "the map is lost", "goal": "find the treasure"},
        "structure": {"type": "threeAct", "outline": ["Setup", "Confrontation", "Resolution"]},
        "story": "Milo woke up.\n\nThe map was gone!",
    }
    values.update(overrides)
    return StoryBundle.from_state(**values)


def test_title_and_subtitle():
    bundle = _bundle()
    assert build_story_title(bundle) == "Milo's Adventure"
    assert build_story_subtitle(bundle) == "a magic forest • threeAct"


def test_build_story_download_layout():
    download = build_story_download(_bundle())

    assert download.filename == "Milo-story.txt"
    assert download.mime == "text/plain"
    lines = download.content.splitlines()
    assert lines[0] == "STORY: Milo's Adventure"
    assert "CHARACTER: Milo" in lines
    assert "Species: Cat" in lines
    assert "Traits: Brave, Curious" in lines
    assert "SETTING: a magic forest" in lines
    assert "CONFLICT: the map is lost" in lines
    assert "GOAL: find the treasure" in lines
    assert "STORY TYPE: threeAct" in lines
    assert "Milo woke up." in download.content
    assert lines[-1] == DOWNLOAD_FOOTER
    assert lines[-2] == "---"


def test_build_story_download_omits_species_line_when_missing():
    download = build_story_download(_bundle(character={"name": "Zed", "traits": []}))
    assert "Species:" not in download.content
    assert "Traits: " in download.content
    assert download.filename == "Zed-story.txt"


def test_download_filename_drops_path_separators():
    download = build_story_download(_bundle(character={"name": "a/b"}))
    assert download.filename == "ab-story.txt"


def test_join_story_sections_skips_blank_parts():
    assert join_story_sections(["  First.  ", "", "   ", "Last."]) == "First.\n\nLast."
    assert join_story_sections({"Setup": "One.", "Resolution": "Two."}) == "One.\n\nTwo."
