"""Stage 5 view: read, download, animate, or edit the finished story."""
from __future__ import annotations

import hashlib

import streamlit as st

from app_constants import DEFAULT_STORY_VIDEO_DURATION
from services.story_service import (
    StoryBundle,
    build_story_download,
    build_story_subtitle,
    build_story_title,
)
from session_state import go_step, reset_all_state, reset_story_video
from story_client import generate_story_video, save_interaction

from .context import CreatePageContext
from .header import render_stage_header


def _story_signature(story: str) -> str:
    return hashlib.sha256(story.encode("utf-8")).hexdigest()


def _save_story_once(context: CreatePageContext, bundle: StoryBundle) -> None:
    """Save the story to the interaction log once per distinct story text."""

    session = context.session
    signature = _story_signature(bundle.story)
    if not bundle.story or not context.user_id or session.get("saved_story_signature") == signature:
        return

    structure = dict(bundle.structure or {})
    if session.get("selected_structure_media"):
        structure["imageUrl"] = session["selected_structure_media"]

    result = save_interaction(
        {
            "user_id": context.user_id,
            "stage": "review",
            "input": {"character": dict(bundle.character), "plot": dict(bundle.plot), "structure": structure},
            "output": {"story": bundle.story},
            "story": bundle.story,
            "character": dict(bundle.character),
            "plot": dict(bundle.plot),
            "structure": structure,
            "workId": session.get("work_id"),
        }
    )
    if result.get("workId"):
        session["work_id"] = result["workId"]
    if "error" in result or not result.get("success"):
        # Leave the signature unset so the next rerun retries.
        if context.logging_enabled:
            st.warning("We couldn't save your story yet. You can still download it below.")
        return
    session["saved_story_signature"] = signature


def render_step(context: CreatePageContext) -> None:
    session = context.session

    if render_stage_header("review"):
        go_step(4)
        st.rerun()

    structure = session.selected_structure
    bundle = StoryBundle.from_state(
        character=session.character,
        plot=session.plot.as_dict(),
        structure={"type": structure["type"], "outline": structure["outline"]} if structure else None,
        story=session.story_text,
    )
    if not bundle.story:
        st.warning("Your story is empty. Go back and write it first.")
        if st.button("← Back to writing", width='stretch'):
            go_step(4)
            st.rerun()
        st.stop()

    _save_story_once(context, bundle)

    st.markdown(f"## {build_story_title(bundle)}")
    st.markdown(f"**{build_story_subtitle(bundle)}**")
    with st.container(border=True):
        st.write(bundle.story)

    download = build_story_download(bundle)
    c1, c2 = st.columns(2)
    with c1:
        st.download_button(
            "Download Story",
            data=download.content,
            file_name=download.filename,
            mime=download.mime,
            width='stretch',
        )
    with c2:
        if st.button("Edit Story", width='stretch'):
            go_step(4)
            st.rerun()

    st.markdown("#### 🎬 Story video")
    if st.button(
        "🎬 Generate Story Video",
        width='stretch',
        disabled=bool(session.get("is_generating_story_video")),
    ):
        reset_story_video()
        session.set_flag("is_generating_story_video", True)
        with st.spinner("Generating Video..."):
            result = generate_story_video(
                bundle.story,
                character=bundle.character,
                plot=bundle.plot,
                user_id=context.user_id,
                duration=DEFAULT_STORY_VIDEO_DURATION,
            )
        session.set_flag("is_generating_story_video", False)
        if "error" in result:
            session["story_video_error"] = result["error"]
        else:
            session["story_video_url"] = result["videoUrl"]
            st.toast("Video generated successfully! 🎬")

    if session.get("story_video_error"):
        st.error(f"Failed to generate video: {session['story_video_error']}")
    if session.get("story_video_url"):
        st.video(session["story_video_url"], autoplay=True, loop=True, muted=True)

    with st.sidebar:
        st.markdown(f"### {bundle.character_name}")
        if session.get("character_image_url"):
            st.image(session["character_image_url"])
        if bundle.character.get("species"):
            st.caption(f"Species: {bundle.character['species']}")
        if bundle.traits:
            st.caption(f"Traits: {', '.join(bundle.traits)}")

    if st.button("Create New Story", width='stretch', type="primary"):
        reset_all_state()
        go_step(1)
        st.rerun()


__all__ = ["render_step"]
