"""Prompt assembly helpers for the Dify bots and fal.ai media requests."""
from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

NEEDS_MORE_MARKER = "need more conversation"
PLOT_COMPLETE_PHRASE = "The plot is getting clearer! Anything else you'd like to talk about?"
STORY_VIDEO_EXCERPT_LIMIT = 600

STAGE_WRITING_TIPS: Mapping[str, str] = {
    "Exposition": "Introduce your character and where they live. What does a normal day look like?",
    "Rising Action": "Something starts to go wrong. Show the problem getting bigger step by step.",
    "Climax": "This is the most exciting moment! Your character faces the biggest challenge.",
    "Falling Action": "Show what happens right after the big moment. How does everyone feel?",
    "Resolution": "Wrap up the story. What did your character learn or change?",
    "Setup": "Who is your character, where are they, and what do they want?",
    "Confrontation": "Your character runs into trouble. What do they try, and what goes wrong?",
    "First Crisis": "The first problem appears. How does your character react?",
    "Second Crisis": "A new, harder problem shows up. Raise the stakes!",
    "Third Crisis": "Things look really tough now. What is your character afraid of?",
}


def get_stage_writing_tips() -> dict[str, str]:
    return dict(STAGE_WRITING_TIPS)


def species_phrase(species: str | None) -> str:
    """Describe the character's species the way the media prompts expect."""

    value = (species or "").strip()
    if not value:
        return "a character"
    if value in {"Boy", "Girl"}:
        return f"a young {value.lower()}"
    return f"a {value.lower()}"


def _character_info_lines(character: Mapping[str, Any]) -> str:
    traits = [str(t).strip() for t in (character.get("traits") or []) if str(t).strip()]
    lines = [
        f"Character name: {character.get('name') or ''}",
        f"Species: {character['species']}" if character.get("species") else "",
        f"Traits: {', '.join(traits)}" if traits else "",
        f"Description: {character['description']}" if character.get("description") else "",
    ]
    return "\n".join(line for line in lines if line)


def build_brainstorm_prompt(character: Mapping[str, Any] | None) -> str:
    """Opening instruction for the mind-map brainstorm bot."""

    if not character:
        return """You are a mind map robot helping elementary school students with plot writing. Use simple, kid-friendly language with proper punctuation.

Start by asking: "Where does this story take place?" (in Chinese: 这个故事发生在哪呢？) Then end your response with exactly six SINGLE WORDS related to story settings (like: school home forest park beach library). Each word must be a single word, not a phrase. Don't use commas between the six words - just space them. Keep proper punctuation in your question (question marks, periods, etc.).

Continue guiding step by step. Each response should:
- Use proper punctuation (question marks, periods, etc.) - DO NOT remove punctuation
- End with exactly six SINGLE WORDS (space-separated, no commas)
- Each word must be a single word, not a phrase"""

    name = (character.get("name") or "").strip() or "the character"
    species = (character.get("species") or "").strip()
    species_suffix = f" (a {species})" if species else ""
    species_the = f" (the {species})" if species else ""

    return f"""You are a mind map robot helping elementary school students with plot writing. Use simple, kid-friendly language with proper punctuation.

Here's the character information the student created:
{_character_info_lines(character)}

IMPORTANT: Always refer to the character by their name "{name}"{species_suffix}, NOT "your character" or "the character". Use "{name}" in your questions.

Start by asking: "Where does {name}'s story take place?" (in Chinese: {name}的故事发生在哪呢？) Then end your response with exactly six SINGLE WORDS related to story settings (like: school home forest park beach library). Each word must be a single word, not a phrase. Don't use commas between the six words - just space them. Keep proper punctuation in your question (question marks, periods, etc.).

Continue guiding the student step by step. Each response should:
- Always use "{name}"{species_the} in your questions, NOT "your character"
- Use proper punctuation (question marks, periods, etc.) in your questions - DO NOT remove punctuation
- End with exactly six SINGLE WORDS related to the current topic (space-separated, no commas)
- Each word must be a single word, not a phrase (e.g., "school home forest" not "magic school enchanted forest")
- When the conversation can fully describe a complete story, say: "{PLOT_COMPLETE_PHRASE}" (in Chinese: 故事情节已经比较清晰了，还想再聊些什么吗？)

CRITICAL: Always use "{name}" in your questions. Always keep proper punctuation in your questions. End with exactly six SINGLE WORDS (space-separated, no commas)."""


def format_transcript(history: Iterable[Mapping[str, Any]]) -> str:
    lines: list[str] = []
    for message in history:
        content = str(message.get("content") or "").strip()
        if not content:
            continue
        speaker = "Student" if message.get("role") == "user" else "Robot"
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


def build_plot_summary_query(history: Iterable[Mapping[str, Any]]) -> str:
    transcript = format_transcript(history)
    return f"""Read the brainstorm conversation between a student and a story robot and summarize the plot.

[Conversation]
{transcript}

[Output format]
setting: <where and when the story happens>
conflict: <the main problem>
goal: <what the character wants to achieve>

[Rules]
- Use the student's own ideas. Keep each value short (a word or a short phrase).
- Write "unknown" for any field the conversation has not decided yet.
- Only when all three fields are clear and the student has talked about the conflict and the goal, add a final line: done
- If the conversation is too short to say anything, reply exactly: {NEEDS_MORE_MARKER}
- Output nothing else."""


def build_structure_examples_query(character: Mapping[str, Any] | None, plot: Mapping[str, Any] | None) -> str:
    character = character or {}
    plot = plot or {}
    return f"""Write three very short example stories (4-6 sentences each) for elementary school students, one for each story structure, all using the same character and plot.

[Character]
{_character_info_lines(character) or "Character name: a hero"}

[Plot]
- Setting: {plot.get("setting") or "a magical place"}
- Conflict: {plot.get("conflict") or "a challenge"}
- Goal: {plot.get("goal") or "their goal"}

[Structures]
- freytag: Freytag's Pyramid (Exposition, Rising Action, Climax, Falling Action, Resolution)
- threeAct: Three Act Structure (Setup, Confrontation, Resolution)
- fichtean: Fichtean Curve (First Crisis, Second Crisis, Third Crisis, Climax, Resolution)

[Output format]
{{
  "freytag": {{"story": "..."}},
  "threeAct": {{"story": "..."}},
  "fichtean": {{"story": "..."}}
}}
- Return JSON only. Use simple, warm, kid-friendly English."""


def build_progress_mentor_query(action: str, stage: str, context: Mapping[str, Any] | None = None) -> str:
    context_json = json.dumps(dict(context or {}), ensure_ascii=False, default=str)
    return f"""You are Luna, a cheerful writing muse for kids. The student is on the "{stage}" stage and the app is currently: {action}.
Context: {context_json}
Reply with one short, encouraging sentence (under 25 words) that tells the student what is happening and what to look forward to."""


def build_writing_hint_query(
    *,
    section: str,
    draft: str | None,
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    structure_name: str | None,
) -> str:
    character = character or {}
    plot = plot or {}
    tip = STAGE_WRITING_TIPS.get(section, "Keep your story moving and show how your character feels.")
    draft_block = (draft or "").strip() or "(nothing written yet)"
    return f"""You are a friendly writing coach for elementary school students. Never write the story for the student; ask one or two guiding questions and give one small idea.

[Story]
- Character: {character.get("name") or "the character"} ({species_phrase(character.get("species"))})
- Setting: {plot.get("setting") or "unknown"}
- Conflict: {plot.get("conflict") or "unknown"}
- Goal: {plot.get("goal") or "unknown"}
- Structure: {structure_name or "unknown"}

[Current section]
- Section: {section}
- Section tip: {tip}
- Student draft: {draft_block}

Reply in under 60 words with simple words."""


def build_structure_video_prompt(
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
    structure_name: str,
) -> str:
    """Preview prompt per structure; the suffix keeps the three requests distinct."""

    character = character or {}
    plot = plot or {}
    base_prompt = (
        "A charming illustration for a children's story: "
        f"{species_phrase(character.get('species'))} named {character.get('name') or 'a character'} "
        f"in {plot.get('setting') or 'a setting'}, {plot.get('conflict') or 'facing a challenge'}. "
        "Colorful, friendly, and suitable for children."
    )
    return f"{base_prompt} Story structure: {structure_name}."


def build_character_image_prompt(character: Mapping[str, Any]) -> str:
    traits = [str(t).strip().lower() for t in (character.get("traits") or []) if str(t).strip()]
    trait_text = f" who is {', '.join(traits)}" if traits else ""
    description = (character.get("description") or "").strip()
    description_text = f" {description}." if description else ""
    return (
        "A friendly full-body portrait for a children's picture book: "
        f"{species_phrase(character.get('species'))} named {character.get('name') or 'a character'}{trait_text}."
        f"{description_text} Bright colors, soft lighting, simple background, without text or watermark."
    )


def build_story_video_prompt(
    story: str,
    character: Mapping[str, Any] | None,
    plot: Mapping[str, Any] | None,
) -> str:
    character = character or {}
    plot = plot or {}
    excerpt = " ".join((story or "").split())
    if len(excerpt) > STORY_VIDEO_EXCERPT_LIMIT:
        excerpt = excerpt[:STORY_VIDEO_EXCERPT_LIMIT].rsplit(" ", 1)[0] + "..."
    return (
        "A gentle animated scene for a children's story. "
        f"Main character: {species_phrase(character.get('species'))} named {character.get('name') or 'a hero'}. "
        f"Setting: {plot.get('setting') or 'a magical place'}. "
        f"Story: {excerpt} "
        "Colorful, warm, storybook animation style, suitable for children."
    )


def build_default_example_story(character: Mapping[str, Any] | None, plot: Mapping[str, Any] | None) -> str:
    character = character or {}
    plot = plot or {}
    return (
        f"Once upon a time, {character.get('name') or 'a hero'} lived in {plot.get('setting') or 'a magical place'}. "
        f"They faced {plot.get('conflict') or 'a challenge'} and worked hard to {plot.get('goal') or 'achieve their goal'}. "
        "In the end, they succeeded and learned an important lesson."
    )


__all__ = [
    "NEEDS_MORE_MARKER",
    "PLOT_COMPLETE_PHRASE",
    "STAGE_WRITING_TIPS",
    "get_stage_writing_tips",
    "species_phrase",
    "format_transcript",
    "build_brainstorm_prompt",
    "build_plot_summary_query",
    "build_structure_examples_query",
    "build_progress_mentor_query",
    "build_writing_hint_query",
    "build_structure_video_prompt",
    "build_character_image_prompt",
    "build_story_video_prompt",
    "build_default_example_story",
]
