"""Telemetry helpers around the interaction log module."""
from __future__ import annotations

from typing import Any, Mapping

import streamlit as st

from interaction_log import record_interaction
from utils.network import get_client_ip


def emit_interaction(
    *,
    stage: str,
    input: Mapping[str, Any] | None = None,
    output: Mapping[str, Any] | None = None,
    story: str | None = None,
    character: Mapping[str, Any] | None = None,
    plot: Mapping[str, Any] | None = None,
    structure: Mapping[str, Any] | None = None,
    work_id: str | None = None,
    user_id: str | None = None,
) -> Any:
    """Wrapper around ``record_interaction`` that defaults user_id to the session user."""

    derived_user = user_id if user_id is not None else st.session_state.get("user_id")

    return record_interaction(
        user_id=derived_user,
        stage=stage,
        input=input,
        output=output,
        story=story,
        character=character,
        plot=plot,
        structure=structure,
        work_id=work_id,
        client_ip=get_client_ip(),
    )


__all__ = ["emit_interaction"]
