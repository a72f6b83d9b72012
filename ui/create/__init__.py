"""Stage renderers for the story wizard, looked up by stage name."""
from __future__ import annotations

from typing import Callable, Mapping

from app_constants import STORY_STAGES
from session_state import stage_name

from .context import CreatePageContext
from . import step1, step2, step3, step4, step5

StageRenderer = Callable[[CreatePageContext], None]

STAGE_RENDERERS: Mapping[str, StageRenderer] = dict(
    zip(STORY_STAGES, (step1.render_step, step2.render_step, step3.render_step, step4.render_step, step5.render_step))
)


def render_current_step(context: CreatePageContext, step_number: int) -> bool:
    """Render the stage for ``step_number``; False when no stage matches."""

    name = stage_name(step_number)
    if name is None:
        return False
    STAGE_RENDERERS[name](context)
    return True


__all__ = ["CreatePageContext", "STAGE_RENDERERS", "render_current_step"]
