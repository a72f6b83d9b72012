"""Stage 2 view: brainstorm the plot with the mind-map robot."""
from __future__ import annotations

import html

import streamlit as st

from app_constants import MAX_PLOT_ROUNDS, PLOT_FIELDS
from session_state import clear_stages_from, go_step
from story_brainstorm import (
    apply_plot_summary,
    clean_suggestion,
    continue_blocker,
    count_student_messages,
    display_value,
    is_known,
    should_summarize,
)
from story_client import send_brainstorm_message, start_brainstorm, summarize_plot
from telemetry import emit_interaction

from .context import CreatePageContext
from .header import render_stage_header

_FIELD_LABELS = {"setting": "Setting", "conflict": "Conflict", "goal": "Goal"}


def _start_conversation(context: CreatePageContext) -> None:
    session = context.session
    with st.spinner("Waking up the mind map robot..."):
        result = start_brainstorm(session.character, user_id=context.user_id)
    if "error" in result:
        session["plot_error"] = result["error"]
        return
    session["plot_error"] = None
    session.plot_messages.append(result["message"])
    session["plot_conversation_id"] = result.get("conversation_id")


def _refresh_summary(context: CreatePageContext) -> None:
    session = context.session
    messages = session.plot_messages
    if not should_summarize(messages):
        return

    session.set_flag("is_summarizing", True)
    response = summarize_plot(
        messages,
        conversation_id=session.get("summary_conversation_id"),
        user_id=context.user_id,
    )
    session.set_flag("is_summarizing", False)
    if response.get("conversation_id"):
        session["summary_conversation_id"] = response["conversation_id"]

    outcome = apply_plot_summary(
        session.plot,
        response,
        student_rounds=count_student_messages(messages),
        summary_done=bool(session.get("plot_summary_done")),
    )
    session.plot = outcome.plot
    session["plot_summary_done"] = outcome.summary_done
    session["plot_updated_fields"] = sorted(outcome.updated_fields)


def _send_message(context: CreatePageContext, text: str) -> None:
    session = context.session
    text = (text or "").strip()
    if not text or session.get("is_sending_message"):
        return

    messages = session.plot_messages
    messages.append({"role": "user", "content": text})
    session.set_flag("is_sending_message", True)
    try:
        with st.spinner("The robot is thinking..."):
            result = send_brainstorm_message(
                text,
                conversation_id=session.get("plot_conversation_id"),
                user_id=context.user_id,
            )
        if "error" in result:
            st.toast(result["error"], icon="⚠️")
            return

        messages.append(result["message"])
        session["plot_conversation_id"] = result.get("conversation_id")
        emit_interaction(
            stage="plot",
            input={"messages": [{"role": m["role"], "content": m["content"]} for m in messages]},
            output={"plotData": session.plot.as_dict()},
            user_id=context.user_id,
        )
        with st.spinner("Updating your plot map..."):
            _refresh_summary(context)
    finally:
        session.set_flag("is_sending_message", False)


def _render_progress_panel(context: CreatePageContext) -> None:
    session = context.session
    plot = session.plot.as_dict()
    updated = set(session.get("plot_updated_fields") or [])

    st.markdown("#### 🗺️ Plot map")
    for name in PLOT_FIELDS:
        value = plot.get(name)
        classes = "plot-field updated" if name in updated else "plot-field"
        value_class = "value" if is_known(value) else "value unknown"
        st.markdown(
            f"<div class='{classes}'><div class='label'>{_FIELD_LABELS[name]}</div>"
            f"<div class='{value_class}'>{html.escape(display_value(value))}</div></div>",
            unsafe_allow_html=True,
        )

    rounds = count_student_messages(session.plot_messages)
    st.caption(f"Rounds: {min(rounds, MAX_PLOT_ROUNDS)} / {MAX_PLOT_ROUNDS}")
    if session.get("plot_summary_done"):
        st.success("Your plot is ready!")


def _render_continue(context: CreatePageContext) -> None:
    """Offer the next stage only once the plot map is complete."""

    session = context.session
    plot = session.plot
    blocker = continue_blocker(
        plot,
        summary_done=bool(session.get("plot_summary_done")),
        student_rounds=count_student_messages(session.plot_messages),
    )
    if blocker:
        st.caption("Keep chatting with the robot to fill in your plot map.")
        return

    if st.button("Continue to Structure →", width='stretch', type="primary"):
        clear_stages_from("structure")
        emit_interaction(
            stage="plot",
            input={"messages": len(session.plot_messages)},
            output={"plot": plot.as_dict()},
            character=session.character,
            plot=plot.as_dict(),
            user_id=context.user_id,
        )
        session.step = 3
        st.rerun()


def render_step(context: CreatePageContext) -> None:
    session = context.session

    if render_stage_header("plot"):
        go_step(1)
        st.rerun()

    if not session.plot_messages and not session.get("plot_error"):
        _start_conversation(context)

    if session.get("plot_error") and not session.plot_messages:
        st.error(f"Failed to start conversation: {session['plot_error']}")
        if st.button("Try again", width='stretch'):
            session["plot_error"] = None
            st.rerun()
        st.stop()

    chat_col, panel_col = st.columns([3, 2])

    with chat_col:
        messages = session.plot_messages
        for message in messages:
            role = "assistant" if message.get("role") == "ai" else "user"
            with st.chat_message(role, avatar="🤖" if role == "assistant" else "🧒"):
                st.markdown(message.get("content", ""))

        last = messages[-1] if messages else None
        suggestions = (last or {}).get("suggestions") or []
        if last and last.get("role") == "ai" and suggestions:
            st.caption("Tap an idea or type your own:")
            cols = st.columns(min(len(suggestions), 3))
            for idx, word in enumerate(suggestions):
                label = clean_suggestion(word)
                if not label:
                    continue
                if cols[idx % len(cols)].button(label, key=f"suggestion_{len(messages)}_{idx}", width='stretch'):
                    _send_message(context, label)
                    st.rerun()

    with panel_col:
        _render_progress_panel(context)
        _render_continue(context)

    typed = st.chat_input("Share your idea...", disabled=bool(session.get("is_sending_message")))
    if typed:
        _send_message(context, typed)
        st.rerun()


__all__ = ["render_step"]
