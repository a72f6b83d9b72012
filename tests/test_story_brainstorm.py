from __future__ import annotations

import pytest

import story_brainstorm
from story_brainstorm import (
    BLOCKER_FIELDS_INCOMPLETE,
    BLOCKER_SUMMARY_PENDING,
    PlotDraft,
    apply_plot_summary,
    build_ai_message,
    can_continue,
    clean_suggestion,
    continue_blocker,
    count_student_messages,
    extract_suggestions,
    parse_plot_summary,
    should_summarize,
)


FULL_SUMMARY = "setting: a magic forest\nconflict: the map is lost\ngoal: find the treasure\ndone"


def test_extract_suggestions_splits_trailing_words():
    split = extract_suggestions("Where does Milo's story take place? school home forest park beach library")
    assert split.words == ["school", "home", "forest", "park", "beach", "library"]
    assert split.cleaned_text == "Where does Milo's story take place?"


def test_extract_suggestions_keeps_extra_words_in_body():
    split = extract_suggestions("Great idea! Let's go school home forest park beach library")
    assert split.words == ["school", "home", "forest", "park", "beach", "library"]
    assert split.cleaned_text == "Great idea! Let's go"


def test_extract_suggestions_drops_commas_between_words():
    split = extract_suggestions("What is the problem? storm, dragon, thief")
    assert split.words == ["storm", "dragon", "thief"]


def test_extract_suggestions_without_terminator():
    split = extract_suggestions("forest castle moon")
    assert split.words == ["forest", "castle", "moon"]
    assert split.cleaned_text == ""


def test_extract_suggestions_without_terminator_keeps_leftover_words():
    split = extract_suggestions("Pick one castle school home forest park beach library")
    assert split.words == ["school", "home", "forest", "park", "beach", "library"]
    assert split.cleaned_text == "Pick one castle"


def test_build_ai_message_falls_back_to_raw_text():
    message = build_ai_message("forest castle moon")
    assert message["role"] == "ai"
    assert message["content"] == "forest castle moon"
    assert message["suggestions"] == ["forest", "castle", "moon"]


def test_build_ai_message_uses_fallback_for_empty_answer():
    message = build_ai_message("", fallback="Hello! Let's start.")
    assert message["content"] == "Hello! Let's start."
    assert message["suggestions"] == []


def test_clean_suggestion_strips_punctuation():
    assert clean_suggestion(" forest! ") == "forest"
    assert clean_suggestion("，") == ""


def test_parse_plot_summary_reads_all_fields():
    parsed = parse_plot_summary(FULL_SUMMARY)
    assert parsed == {
        "setting": "a magic forest",
        "conflict": "the map is lost",
        "goal": "find the treasure",
    }


def test_parse_plot_summary_is_case_insensitive_and_accepts_fullwidth_colon():
    parsed = parse_plot_summary("Setting：school\nGoal: win the race")
    assert parsed["setting"] == "school"
    assert parsed["conflict"] is None
    assert parsed["goal"] == "win the race"


def test_should_summarize_after_first_student_message():
    messages = [{"role": "ai", "content": "Where?"}]
    assert should_summarize(messages) is False
    messages.append({"role": "user", "content": "forest"})
    assert should_summarize(messages) is True
    assert count_student_messages(messages) == 1


def test_apply_plot_summary_updates_fields_and_marks_done():
    outcome = apply_plot_summary(PlotDraft(), {"summary": FULL_SUMMARY}, student_rounds=3)
    assert outcome.summary_done is True
    assert outcome.plot == PlotDraft(
        setting="a magic forest",
        conflict="the map is lost",
        goal="find the treasure",
    )
    assert outcome.updated_fields == {"setting", "conflict", "goal"}


def test_apply_plot_summary_ignores_not_ready_response_before_max_rounds():
    plot = PlotDraft(setting="school")
    outcome = apply_plot_summary(plot, {"summary": "", "needsMoreConversation": True}, student_rounds=2)
    assert outcome.plot is plot
    assert outcome.summary_done is False
    assert outcome.updated_fields == frozenset()


def test_apply_plot_summary_ignores_error_response():
    plot = PlotDraft(setting="school")
    outcome = apply_plot_summary(plot, {"error": "boom"}, student_rounds=4, summary_done=False)
    assert outcome.plot is plot
    assert outcome.summary_done is False


def test_apply_plot_summary_forces_completion_at_max_rounds():
    plot = PlotDraft(setting="school")
    outcome = apply_plot_summary(
        plot,
        {"error": "timeout"},
        student_rounds=story_brainstorm.MAX_PLOT_ROUNDS,
    )
    assert outcome.summary_done is True
    assert outcome.plot == PlotDraft(setting="school", conflict="unknown", goal="unknown")


@pytest.mark.parametrize(
    "not_ready",
    [{"error": "timeout"}, {"needsMoreConversation": True}],
)
def test_apply_plot_summary_parses_summary_of_not_ready_response_at_max_rounds(not_ready):
    response = {"summary": "setting: the moon\nconflict: no air\ngoal: unknown", **not_ready}
    outcome = apply_plot_summary(
        PlotDraft(setting="school"),
        response,
        student_rounds=story_brainstorm.MAX_PLOT_ROUNDS,
    )
    assert outcome.summary_done is True
    assert outcome.plot == PlotDraft(setting="the moon", conflict="no air", goal="unknown")
    assert outcome.updated_fields == frozenset({"setting", "conflict"})


def test_apply_plot_summary_completes_at_max_rounds_without_done_marker():
    outcome = apply_plot_summary(
        PlotDraft(),
        {"summary": "setting: beach\nconflict: a storm"},
        student_rounds=story_brainstorm.MAX_PLOT_ROUNDS + 1,
    )
    assert outcome.summary_done is True
    assert outcome.plot == PlotDraft(setting="beach", conflict="a storm", goal="")


def test_apply_plot_summary_keeps_unknown_without_marking_updated():
    outcome = apply_plot_summary(
        PlotDraft(),
        {"summary": "setting: beach\nconflict: unknown\ngoal: unknown"},
        student_rounds=2,
    )
    assert outcome.plot.setting == "beach"
    assert outcome.plot.conflict == "unknown"
    assert outcome.updated_fields == {"setting"}
    assert outcome.summary_done is False


def test_apply_plot_summary_unchanged_values_are_not_marked_updated():
    plot = PlotDraft(setting="beach", conflict="storm", goal="get home")
    outcome = apply_plot_summary(
        plot,
        {"summary": "setting: beach\nconflict: a big storm\ngoal: get home"},
        student_rounds=5,
    )
    assert outcome.updated_fields == {"conflict"}


@pytest.mark.parametrize(
    ("plot", "summary_done", "rounds", "expected"),
    [
        (PlotDraft("forest", "lost map", "find it"), True, 3, True),
        (PlotDraft("forest", "lost map", "find it"), False, 3, False),
        (PlotDraft("forest", "unknown", "find it"), True, 3, False),
        (PlotDraft("forest", "", ""), True, 10, True),
    ],
)
def test_can_continue_rules(plot, summary_done, rounds, expected):
    assert can_continue(plot, summary_done=summary_done, student_rounds=rounds) is expected


def test_continue_blocker_messages():
    incomplete = PlotDraft(setting="forest")
    assert continue_blocker(incomplete, summary_done=False, student_rounds=2) == BLOCKER_SUMMARY_PENDING
    assert continue_blocker(incomplete, summary_done=True, student_rounds=2) == BLOCKER_FIELDS_INCOMPLETE
    complete = PlotDraft("forest", "lost map", "find it")
    assert continue_blocker(complete, summary_done=True, student_rounds=2) is None


def test_plot_draft_from_mapping_strips_values():
    plot = PlotDraft.from_mapping({"setting": "  forest ", "goal": None})
    assert plot.as_dict() == {"setting": "forest", "conflict": "", "goal": ""}
    assert PlotDraft.from_mapping(None) == PlotDraft()
