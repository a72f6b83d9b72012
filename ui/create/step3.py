"""Stage 3 view: compare example stories and choose a structure."""
from __future__ import annotations

import html
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait

import streamlit as st

from app_constants import STRUCTURES
from session_state import clear_stages_from, go_step
from story_client import StoryExample, fetch_mentor_message, generate_structure_examples
from telemetry import emit_interaction

from .context import CreatePageContext
from .header import render_stage_header

GUIDE_TEXT = (
    "Now that we have your character and plot, let's choose how to structure your story! "
    "Different structures create different feelings. Let me show you three powerful ways "
    "to tell your story:"
)
GENERATING_ACTION = "Generating example stories with AI images"


def _render_guide() -> None:
    st.markdown("#### ✨ Story Structure Guide")
    st.write(GUIDE_TEXT)
    cols = st.columns(len(STRUCTURES))
    for col, structure in zip(cols, STRUCTURES):
        with col:
            st.markdown(f"**{structure['name']}**")
            st.caption(structure["desc"])
            st.markdown(" → ".join(structure["outline"]))


def _generate(context: CreatePageContext) -> None:
    session = context.session
    character = session.character
    plot = session.plot.as_dict()
    mentor_context = {
        "currentPage": session.get("structure_page_idx") or 0,
        "examplesGenerated": False,
        "plot": plot,
        "character": character.get("name"),
    }

    session.set_flag("is_generating_examples", True)
    session["structure_mentor_message"] = f"{GENERATING_ACTION}..."
    mentor_slot = st.empty()
    executor = ThreadPoolExecutor(max_workers=2)
    try:
        mentor_future = executor.submit(
            fetch_mentor_message,
            GENERATING_ACTION,
            stage="structure",
            context=mentor_context,
            user_id=context.user_id,
        )
        examples_future = executor.submit(generate_structure_examples, character, plot, user_id=context.user_id)
        with st.spinner("Luna is preparing example stories and videos..."):
            done, _ = wait([mentor_future, examples_future], return_when=FIRST_COMPLETED)
            if mentor_future in done and mentor_future.result():
                mentor_slot.info(f"🌙 Luna: {mentor_future.result()}")
            result = examples_future.result()
    finally:
        # A mentor reply still pending here is dropped.
        executor.shutdown(wait=False)
    session.set_flag("is_generating_examples", False)
    mentor_slot.empty()

    if mentor_future.done() and mentor_future.result():
        session["structure_mentor_message"] = mentor_future.result()

    session["structure_examples"] = result["examples"]
    session["structure_has_videos"] = result["has_videos"]
    session["structure_error"] = result.get("error")
    session["structure_page_idx"] = 0
    if result.get("error"):
        st.toast("Failed to generate examples", icon="⚠️")
    elif result["has_videos"]:
        st.toast("Example stories and videos generated!", icon="🎬")
    else:
        st.toast("Example stories generated!", icon="📖")


def _render_example(example: StoryExample, structure: dict) -> None:
    st.markdown(f"### {structure['name']}")
    st.caption(structure["desc"])
    if example.has_video:
        st.video(example.video_url)
    else:
        st.image(example.image_url, width=240)
    st.write(example.story)
    st.markdown("**Structure steps:** " + " → ".join(structure["outline"]))


def render_step(context: CreatePageContext) -> None:
    session = context.session

    if render_stage_header("structure"):
        go_step(2)
        st.rerun()

    examples: list[StoryExample] | None = session.get("structure_examples")
    if not examples:
        _render_guide()
        if st.button("📖 See Structures in Detail →", width='stretch', type="primary"):
            _generate(context)
            st.rerun()
        return

    mentor = session.get("structure_mentor_message")
    if mentor:
        st.markdown(f"<div class='mentor-line'>🌙 <b>Luna:</b> {html.escape(mentor)}</div>", unsafe_allow_html=True)

    page = int(session.get("structure_page_idx") or 0) % len(STRUCTURES)
    structure = STRUCTURES[page]
    example = next((item for item in examples if item.structure_type == structure["type"]), None)
    if example is None:
        st.warning("This example is missing. Try generating again.")
    else:
        _render_example(example, structure)

    prev_col, page_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("← Previous", width='stretch', disabled=page == 0):
            session["structure_page_idx"] = page - 1
            st.rerun()
    with page_col:
        st.caption(f"Structure {page + 1} of {len(STRUCTURES)}")
    with next_col:
        if st.button("Next →", width='stretch', disabled=page == len(STRUCTURES) - 1):
            session["structure_page_idx"] = page + 1
            st.rerun()

    c1, c2 = st.columns(2)
    with c1:
        if st.button(f"✅ Use {structure['name']}", width='stretch', type="primary"):
            clear_stages_from("writing")
            session["selected_structure_type"] = structure["type"]
            media_url = (example.video_url or example.image_url) if example else ""
            session["selected_structure_media"] = media_url or None
            emit_interaction(
                stage="structure",
                input={"action": f"Selected structure: {structure['name']}"},
                output={"structure": structure["type"], "mediaUrl": media_url},
                character=session.character,
                plot=session.plot.as_dict(),
                structure={"type": structure["type"], "outline": structure["outline"]},
            )
            session.step = 4
            st.rerun()
    with c2:
        if st.button("🔄 Generate new examples", width='stretch'):
            _generate(context)
            st.rerun()


__all__ = ["render_step"]
