"""Resolve the student's IP address for interaction records.

Both the Streamlit wizard and the HTTP proxy usually sit behind a load
balancer, so proxy headers win over the socket peer address.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

_PROXY_HEADERS = ("X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP")


def _header(headers: Mapping[str, Any], name: str) -> str:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return str(value or "").strip()


def client_ip_from_headers(headers: Mapping[str, Any] | None, fallback: str | None = None) -> Optional[str]:
    """First hop of ``X-Forwarded-For``, then the single-address headers, then ``fallback``."""

    if headers:
        for name in _PROXY_HEADERS:
            value = _header(headers, name)
            if value:
                return value.split(",")[0].strip() or None
    return (fallback or "").strip() or None


def get_client_ip() -> Optional[str]:
    """IP of the browser driving the current Streamlit script run."""
    try:
        from streamlit.runtime.scriptrunner import get_script_run_ctx

        ctx = get_script_run_ctx()
    except ImportError:
        return None
    if not ctx:
        return None
    headers = getattr(ctx, "request_headers", None) or {}
    return client_ip_from_headers(headers, fallback=_header(headers, "Remote-Addr") or None)


__all__ = ["client_ip_from_headers", "get_client_ip"]
