"""Stage header shared by every wizard stage."""
from __future__ import annotations

import streamlit as st

from app_constants import STAGE_TITLES, STORY_STAGES


def render_stage_header(stage: str, *, back_label: str = "← Back") -> bool:
    """Render number, title and back button; returns ``True`` when back was clicked."""

    number = STORY_STAGES.index(stage) + 1
    back_col, title_col = st.columns([1, 5])
    with back_col:
        clicked = st.button(back_label, key=f"back_{stage}", width='stretch')
    with title_col:
        st.markdown(
            f"<span class='stage-badge'>Stage {number} of {len(STORY_STAGES)}</span>",
            unsafe_allow_html=True,
        )
        st.subheader(STAGE_TITLES[stage])
    return clicked


__all__ = ["render_stage_header"]
