"""Stage 4 view: write the story one outline section at a time."""
from __future__ import annotations

import streamlit as st

from prompts.story import get_stage_writing_tips
from services.story_service import join_story_sections
from session_state import clear_stages_from, go_step
from story_client import request_writing_hint
from telemetry import emit_interaction

from .context import CreatePageContext
from .header import render_stage_header


def _section_key(structure_type: str, idx: int) -> str:
    return f"writing_{structure_type}_{idx}"


def render_step(context: CreatePageContext) -> None:
    session = context.session

    if render_stage_header("writing"):
        go_step(3)
        st.rerun()

    structure = session.selected_structure
    if structure is None:
        st.warning("Pick a story structure first.")
        if st.button("← Choose a structure", width='stretch'):
            go_step(3)
            st.rerun()
        st.stop()

    character = session.character
    plot = session.plot.as_dict()
    sections: dict[str, str] = dict(session.get("writing_sections") or {})
    hints: dict[str, str] = dict(session.get("writing_hints") or {})
    tips = get_stage_writing_tips()

    st.caption(
        f"Writing **{character.get('name') or 'your hero'}**'s story with "
        f"**{structure['name']}**. Fill in each part below."
    )

    for idx, section in enumerate(structure["outline"]):
        key = _section_key(structure["type"], idx)
        if key not in st.session_state:
            st.session_state[key] = sections.get(section, "")

        st.markdown(f"#### {idx + 1}. {section}")
        if tips.get(section):
            st.caption(tips[section])
        sections[section] = st.text_area(section, key=key, height=140, label_visibility="collapsed")

        if st.button("💡 Get a hint", key=f"hint_{key}"):
            with st.spinner("Thinking of a hint..."):
                result = request_writing_hint(
                    section=section,
                    draft=sections[section],
                    character=character,
                    plot=plot,
                    structure=structure,
                    conversation_id=session.get("writing_conversation_id"),
                    user_id=context.user_id,
                )
            if "error" in result:
                session["writing_hint_error"] = result["error"]
            else:
                session["writing_hint_error"] = None
                hints[section] = result.get("hint") or ""
                if result.get("conversation_id"):
                    session["writing_conversation_id"] = result["conversation_id"]
        if hints.get(section):
            st.info(hints[section], icon="💡")

    session["writing_sections"] = sections
    session["writing_hints"] = hints
    if session.get("writing_hint_error"):
        st.warning(f"Could not get a hint: {session['writing_hint_error']}")

    story = join_story_sections([sections.get(section, "") for section in structure["outline"]])
    if st.button("Finish my story →", width='stretch', type="primary"):
        if not story:
            st.error("Please write at least one part of your story.")
            st.stop()
        clear_stages_from("review")
        session["story_text"] = story
        emit_interaction(
            stage="writing",
            input={"sections": sections},
            output={"story": story},
            character=character,
            plot=plot,
            structure={"type": structure["type"], "outline": structure["outline"]},
        )
        session.step = 5
        st.rerun()


__all__ = ["render_step"]
