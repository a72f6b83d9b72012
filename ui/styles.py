"""Styling helpers for Streamlit layouts."""
from __future__ import annotations

from typing import Optional

import streamlit as st


def render_app_styles(background_url: Optional[str] = None) -> None:
    """Apply global styling; ``background_url`` blurs a structure preview behind the page."""
    base_css = """
    <style>
    .stApp {
        background: linear-gradient(135deg, #e0e7ff 0%, #faf5ff 40%, #fdf2f8 70%, #fff7ed 100%);
    }
    [data-testid="stHeader"] {
        background: rgba(0, 0, 0, 0);
    }
    [data-testid="stAppViewContainer"] > .main > div:first-child {
        background-color: rgba(255, 255, 255, 0.92);
        border-radius: 20px;
        padding: 1.75rem 2rem;
        box-shadow: 0 18px 44px rgba(0, 0, 0, 0.12);
        max-width: 960px;
    }
    .stage-badge {
        display: inline-block;
        padding: 0.15rem 0.7rem;
        border-radius: 999px;
        background: linear-gradient(90deg, #7c3aed, #db2777);
        color: #ffffff;
        font-size: 0.8rem;
        font-weight: 700;
    }
    .plot-field {
        border: 2px solid #e9d5ff;
        border-radius: 12px;
        padding: 0.55rem 0.8rem;
        margin-bottom: 0.5rem;
        background: #ffffff;
    }
    .plot-field.updated {
        border-color: #f472b6;
        background: #fdf2f8;
    }
    .plot-field .label {
        font-size: 0.75rem;
        font-weight: 700;
        color: #7c3aed;
        text-transform: uppercase;
    }
    .plot-field .value.unknown {
        color: #9ca3af;
        font-style: italic;
    }
    .mentor-line {
        border-left: 4px solid #a855f7;
        padding: 0.4rem 0.8rem;
        background: #faf5ff;
        border-radius: 8px;
    }
    </style>
    """
    st.markdown(base_css, unsafe_allow_html=True)

    if background_url:
        st.markdown(
            "<style>.stApp {"
            f"background-image: url(\"{background_url}\");"
            "background-size: cover; background-attachment: fixed;"
            "}</style>",
            unsafe_allow_html=True,
        )


__all__ = ["render_app_styles"]
