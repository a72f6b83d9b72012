"""Stage 1 view: create the main character."""
from __future__ import annotations

import streamlit as st

from app_constants import SPECIES_OPTIONS, TRAIT_OPTIONS
from session_state import clear_stages_from, reset_all_state
from story_client import generate_character_image
from telemetry import emit_interaction

from .context import CreatePageContext
from .header import render_stage_header


def render_step(context: CreatePageContext) -> None:
    session = context.session

    if render_stage_header("character", back_label="← Home"):
        reset_all_state()
        st.rerun()

    character = session.character
    species_options = ["(none)", *SPECIES_OPTIONS]
    current_species = character.get("species") or "(none)"

    with st.form("character_form", clear_on_submit=False):
        name = st.text_input(
            "Character name",
            value=character.get("name", ""),
            placeholder="e.g. Milo",
        )
        species = st.selectbox(
            "What kind of character?",
            species_options,
            index=species_options.index(current_species) if current_species in species_options else 0,
        )
        traits = st.multiselect(
            "Personality traits",
            list(TRAIT_OPTIONS),
            default=[trait for trait in character.get("traits", []) if trait in TRAIT_OPTIONS],
        )
        description = st.text_area(
            "Anything else about your character?",
            value=character.get("description", ""),
            placeholder="e.g. Always carries a tiny red umbrella",
            height=96,
        )
        c1, c2 = st.columns(2)
        draw_clicked = c1.form_submit_button("🎨 Draw my character", width='stretch')
        next_clicked = c2.form_submit_button("Next: Brainstorm →", width='stretch')

    updated = {
        "name": (name or "").strip(),
        "species": "" if species == "(none)" else species,
        "traits": list(traits),
        "description": (description or "").strip(),
    }
    if session.get("character_image_url"):
        updated["image_url"] = session["character_image_url"]

    if draw_clicked or next_clicked:
        session.character = updated
        if not updated["name"]:
            st.error("Please give your character a name.")
            st.stop()

    if draw_clicked:
        with st.spinner("Drawing your character..."):
            session.set_flag("is_generating_character_image", True)
            result = generate_character_image(updated, user_id=context.user_id)
            session.set_flag("is_generating_character_image", False)
        if "error" in result:
            session["character_image_error"] = result["error"]
        else:
            session["character_image_error"] = None
            session["character_image_url"] = result["imageUrl"]
            updated["image_url"] = result["imageUrl"]
            session.character = updated
        st.rerun()

    image_url = session.get("character_image_url")
    if image_url:
        st.image(image_url, caption=updated["name"] or None, width=320)
    if session.get("character_image_error"):
        st.warning(f"Could not draw the character: {session['character_image_error']}")

    if next_clicked:
        clear_stages_from("plot")
        emit_interaction(stage="character", input={"character": updated}, character=updated)
        session.step = 2
        st.rerun()


__all__ = ["render_step"]
