# app.py
from __future__ import annotations

import logging
import os

import streamlit as st

from app_constants import APP_TITLE, STORY_STAGES
from interaction_log import get_interaction_logging_status, init_interaction_log
from session_proxy import StorySessionProxy
from session_state import ensure_state, stage_name
from ui.create import CreatePageContext, render_current_step
from ui.home import render_home_screen
from ui.styles import render_app_styles

st.set_page_config(page_title=APP_TITLE, page_icon="📖", layout="wide")

logging.basicConfig(
    level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

init_interaction_log()
logging_enabled, logging_error = get_interaction_logging_status()

ensure_state()
session_proxy = StorySessionProxy(st.session_state)
current_step = session_proxy.step

render_app_styles(session_proxy.get("selected_structure_media") if stage_name(current_step) == "review" else None)

st.title(f"📖 {APP_TITLE}")

progress_placeholder = st.empty()
if current_step > 0:
    progress_placeholder.progress(min(current_step / len(STORY_STAGES), 1.0))
else:
    progress_placeholder.empty()

if logging_error:
    st.caption(f"Interaction log unavailable: {logging_error}")

create_context = CreatePageContext(
    session=session_proxy,
    user_id=session_proxy.user_id,
    logging_enabled=logging_enabled,
)

if current_step == 0 or not render_current_step(create_context, current_step):
    render_home_screen(logging_enabled=logging_enabled)
