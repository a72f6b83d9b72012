from __future__ import annotations

from prompts.story import (
    NEEDS_MORE_MARKER,
    PLOT_COMPLETE_PHRASE,
    STAGE_WRITING_TIPS,
    STORY_VIDEO_EXCERPT_LIMIT,
    build_brainstorm_prompt,
    build_plot_summary_query,
    build_story_video_prompt,
    build_structure_video_prompt,
    get_stage_writing_tips,
    species_phrase,
)


def test_stage_writing_tips_returns_copy():
    snapshot = get_stage_writing_tips()
    assert snapshot == dict(STAGE_WRITING_TIPS)
    snapshot["Climax"] = "modified"
    assert STAGE_WRITING_TIPS.get("Climax") != "modified"


def test_species_phrase():
    assert species_phrase("Boy") == "a young boy"
    assert species_phrase("Girl") == "a young girl"
    assert species_phrase("Dragon") == "a dragon"
    assert species_phrase("") == "a character"
    assert species_phrase(None) == "a character"


def test_brainstorm_prompt_without_character():
    prompt = build_brainstorm_prompt(None)
    assert "Where does this story take place?" in prompt
    assert "six SINGLE WORDS" in prompt


def test_brainstorm_prompt_uses_character_name():
    prompt = build_brainstorm_prompt({"name": "Milo", "species": "Cat", "traits": ["Brave"]})
    assert "Where does Milo's story take place?" in prompt
    assert '"Milo" (a Cat)' in prompt
    assert "Traits: Brave" in prompt
    assert PLOT_COMPLETE_PHRASE in prompt


def test_plot_summary_query_includes_transcript_and_marker():
    query = build_plot_summary_query(
        [
            {"role": "ai", "content": "Where?"},
            {"role": "user", "content": "  the moon "},
            {"role": "user", "content": ""},
        ]
    )
    assert "Robot: Where?" in query
    assert "Student: the moon" in query
    assert NEEDS_MORE_MARKER in query


def test_structure_video_prompt_suffix_differs_per_structure():
    character = {"name": "Milo", "species": "Boy"}
    plot = {"setting": "the beach", "conflict": "a storm"}
    first = build_structure_video_prompt(character, plot, "Freytag's Pyramid")
    second = build_structure_video_prompt(character, plot, "Fichtean Curve")
    assert first.endswith(" Story structure: Freytag's Pyramid.")
    assert second.endswith(" Story structure: Fichtean Curve.")
    assert first.split(" Story structure:")[0] == second.split(" Story structure:")[0]
    assert "a young boy named Milo" in first


def test_story_video_prompt_clips_long_story():
    story = "word " * 1000
    prompt = build_story_video_prompt(story, {"name": "Milo"}, None)
    excerpt = prompt.split("Story: ", 1)[1].split(" Colorful", 1)[0]
    assert len(excerpt) <= STORY_VIDEO_EXCERPT_LIMIT + 3
    assert excerpt.endswith("...")
