"""Home screen for starting a new story."""
from __future__ import annotations

import streamlit as st

from app_constants import STAGE_TITLES, STORY_STAGES
from session_state import go_step, reset_all_state


def render_home_screen(*, logging_enabled: bool) -> None:
    st.subheader("Let's write a story together!")
    st.write(
        "Create a character, brainstorm a plot with a friendly robot, "
        "pick a story structure, and write your own adventure."
    )
    for idx, stage in enumerate(STORY_STAGES, start=1):
        st.markdown(f"{idx}. {STAGE_TITLES[stage]}")

    if st.button("✏️ Start a new story", width='stretch', type="primary"):
        reset_all_state()
        go_step(1)
        st.rerun()

    if not logging_enabled:
        st.caption("Progress is not being saved in this session.")


__all__ = ["render_home_screen"]
