"""Plot brainstorm helpers: suggestion words, summary parsing, plot reconciliation."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from app_constants import (
    MAX_PLOT_ROUNDS,
    PLOT_FIELDS,
    SUGGESTION_WORD_COUNT,
    SUMMARY_MIN_STUDENT_ROUNDS,
    UNKNOWN_VALUE,
)

logger = logging.getLogger(__name__)

_SENTENCE_TERMINATORS = (".", "?", "!", "。", "？", "！")
_WORD_SPLIT_RE = re.compile(r"\s+|[,，、]")
_COMMA_RE = re.compile(r"[,，、]")
_SUGGESTION_PUNCT_RE = re.compile(r"[,，、。.!?！？;；:：]")

_FIELD_PATTERNS: Mapping[str, re.Pattern[str]] = {
    "setting": re.compile(r"setting[：:]\s*([^\n\r]+?)(?=\n\s*(?:conflict|goal|done)|$)", re.IGNORECASE),
    "conflict": re.compile(r"conflict[：:]\s*([^\n\r]+?)(?=\n\s*(?:goal|done|$)|$)", re.IGNORECASE),
    "goal": re.compile(r"goal[：:]\s*([^\n\r]+?)(?=\n\s*(?:done|$)|$)", re.IGNORECASE),
}

BLOCKER_SUMMARY_PENDING = "Please wait for the plot summary to complete"
BLOCKER_FIELDS_INCOMPLETE = "Please complete all plot fields (Setting, Conflict, Goal) before continuing"


@dataclass(frozen=True)
class SuggestionSplit:
    words: list[str]
    cleaned_text: str


@dataclass(frozen=True)
class PlotDraft:
    setting: str = ""
    conflict: str = ""
    goal: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "PlotDraft":
        if not data:
            return cls()
        return cls(**{name: str(data.get(name) or "").strip() for name in PLOT_FIELDS})

    def as_dict(self) -> dict[str, str]:
        return {"setting": self.setting, "conflict": self.conflict, "goal": self.goal}

    def is_complete(self) -> bool:
        return all(is_known(getattr(self, name)) for name in PLOT_FIELDS)


@dataclass(frozen=True)
class SummaryOutcome:
    plot: PlotDraft
    summary_done: bool
    updated_fields: frozenset[str] = field(default_factory=frozenset)


def is_known(value: str | None) -> bool:
    text = (value or "").strip()
    return bool(text) and text.lower() != UNKNOWN_VALUE


def display_value(value: str | None) -> str:
    return value.strip() if is_known(value) else UNKNOWN_VALUE


def extract_suggestions(text: str) -> SuggestionSplit:
    """Split an AI reply into the visible text and its trailing suggestion words.

    The brainstorm bot ends every reply with six single words after its last
    sentence. Everything after the final terminator is treated as the word
    list; when more than six words appear there, only the last six become
    suggestions and the rest stay in the message body.
    """

    text = text or ""
    last_terminator = max(text.rfind(mark) for mark in _SENTENCE_TERMINATORS)

    tail = text[last_terminator + 1:].strip() if last_terminator >= 0 else text.strip()
    words = [
        cleaned
        for cleaned in (_COMMA_RE.sub("", piece).strip() for piece in _WORD_SPLIT_RE.split(tail))
        if cleaned
    ]

    head = text[:last_terminator + 1].strip() if last_terminator >= 0 else ""
    if len(words) <= SUGGESTION_WORD_COUNT:
        return SuggestionSplit(words=words, cleaned_text=head)

    leftover = " ".join(words[:-SUGGESTION_WORD_COUNT]).strip()
    if last_terminator >= 0:
        cleaned = f"{head} {leftover}"
    else:
        cleaned = leftover
    return SuggestionSplit(words=words[-SUGGESTION_WORD_COUNT:], cleaned_text=cleaned.strip())


def clean_suggestion(word: str) -> str:
    return _SUGGESTION_PUNCT_RE.sub("", word or "").strip()


def build_ai_message(answer: str, *, fallback: str = "") -> dict[str, Any]:
    """Turn a raw bot answer into a chat message with suggestion chips."""

    raw = answer or fallback
    split = extract_suggestions(raw)
    return {
        "role": "ai",
        "content": split.cleaned_text or raw,
        "suggestions": split.words,
    }


def count_student_messages(messages: Iterable[Mapping[str, Any]]) -> int:
    return sum(1 for message in messages if message.get("role") == "user")


def should_summarize(messages: Iterable[Mapping[str, Any]]) -> bool:
    return count_student_messages(messages) >= SUMMARY_MIN_STUDENT_ROUNDS


def parse_plot_summary(summary: str) -> dict[str, str | None]:
    """Extract setting/conflict/goal values from a ``field: value`` summary."""

    parsed: dict[str, str | None] = {}
    for name, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(summary or "")
        value = None
        if match and match.group(1).strip():
            prefix = re.compile(rf"^{name}[：:]\s*", re.IGNORECASE)
            value = prefix.sub("", match.group(1).strip()).strip() or None
        parsed[name] = value
    return parsed


def apply_plot_summary(
    plot: PlotDraft,
    response: Mapping[str, Any],
    *,
    student_rounds: int,
    summary_done: bool = False,
) -> SummaryOutcome:
    """Merge a summary-bot response into the current plot draft."""

    reached_max_rounds = student_rounds >= MAX_PLOT_ROUNDS
    not_ready = bool(response.get("error")) or bool(response.get("needsMoreConversation"))
    summary = str(response.get("summary") or "")

    if reached_max_rounds:
        if not_ready:
            logger.info("Reached %s rounds, forcing plot summary completion", MAX_PLOT_ROUNDS)
            summary_done = True
            if not summary.strip():
                filled = PlotDraft(
                    setting=plot.setting or UNKNOWN_VALUE,
                    conflict=plot.conflict or UNKNOWN_VALUE,
                    goal=plot.goal or UNKNOWN_VALUE,
                )
                return SummaryOutcome(plot=filled, summary_done=True)
    elif not_ready:
        logger.debug("Plot summary not ready yet: %s", response.get("error") or "needs more conversation")
        return SummaryOutcome(plot=plot, summary_done=summary_done)

    if "done" in summary.lower() or reached_max_rounds:
        summary_done = True

    values = plot.as_dict()
    updated: set[str] = set()
    for name, candidate in parse_plot_summary(summary).items():
        if not candidate:
            continue
        if candidate.lower() == UNKNOWN_VALUE:
            values[name] = UNKNOWN_VALUE
        elif candidate != values[name]:
            values[name] = candidate
            updated.add(name)

    return SummaryOutcome(plot=PlotDraft(**values), summary_done=summary_done, updated_fields=frozenset(updated))


def can_continue(plot: PlotDraft, *, summary_done: bool, student_rounds: int) -> bool:
    if not summary_done:
        return False
    return student_rounds >= MAX_PLOT_ROUNDS or plot.is_complete()


def continue_blocker(plot: PlotDraft, *, summary_done: bool, student_rounds: int) -> str | None:
    """Return the message explaining why the student cannot move on yet."""

    if can_continue(plot, summary_done=summary_done, student_rounds=student_rounds):
        return None
    if not summary_done:
        return BLOCKER_SUMMARY_PENDING
    return BLOCKER_FIELDS_INCOMPLETE


__all__ = [
    "BLOCKER_FIELDS_INCOMPLETE",
    "BLOCKER_SUMMARY_PENDING",
    "PlotDraft",
    "SuggestionSplit",
    "SummaryOutcome",
    "apply_plot_summary",
    "build_ai_message",
    "can_continue",
    "clean_suggestion",
    "continue_blocker",
    "count_student_messages",
    "display_value",
    "extract_suggestions",
    "is_known",
    "parse_plot_summary",
    "should_summarize",
]
