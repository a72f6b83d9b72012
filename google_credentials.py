"""Service-account credential loading for the Firestore interaction log."""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)

try:  # pragma: no cover - optional dependency
    from google.oauth2 import service_account  # type: ignore
except Exception:  # pragma: no cover - google-auth not installed
    service_account = None  # type: ignore

_REQUIRED_FIELDS = {"type", "project_id", "private_key", "client_email"}
_SECRET_SECTION = "gcp_service_account"
_ENV_JSON_KEYS = ("GOOGLE_CREDENTIALS_JSON", "GCP_SERVICE_ACCOUNT_INFO")
_DEFAULT_CREDENTIAL_FILE = Path("google-credential.json")


def parse_service_account_info(candidate: Any) -> dict[str, Any] | None:
    """Return a service-account mapping when ``candidate`` looks like one."""

    if candidate is None:
        return None
    if isinstance(candidate, str):
        text = candidate.strip()
        if not text:
            return None
        try:
            candidate = json.loads(text)
        except ValueError:
            return None
    if hasattr(candidate, "keys") and hasattr(candidate, "__getitem__"):
        info = {str(key): candidate[key] for key in candidate.keys()}
        if _REQUIRED_FIELDS.issubset(info.keys()):
            return info
    return None


def _info_from_env() -> dict[str, Any] | None:
    for env_key in _ENV_JSON_KEYS:
        info = parse_service_account_info(os.getenv(env_key))
        if info:
            return info
    return None


def _info_from_streamlit() -> dict[str, Any] | None:
    try:
        import streamlit as st

        secrets = st.secrets
        section = secrets.get(_SECRET_SECTION) if hasattr(secrets, "get") else None
    except Exception:  # pragma: no cover - no secrets file or streamlit missing
        return None
    return parse_service_account_info(section)


def _credential_file() -> Path | None:
    env_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    for path in (Path(env_path).expanduser() if env_path else None, _DEFAULT_CREDENTIAL_FILE):
        if path is not None and path.is_file():
            return path
    return None


@lru_cache(maxsize=1)
def get_service_account_credentials():
    """Credentials from a key file, an env JSON blob, or Streamlit secrets."""

    if service_account is None:
        return None

    path = _credential_file()
    if path is not None:
        try:
            return service_account.Credentials.from_service_account_file(str(path))
        except Exception as exc:  # pragma: no cover - logged and skipped
            logger.warning("Failed to load Google credentials from %s: %s", path, exc)

    info: Mapping[str, Any] | None = _info_from_env() or _info_from_streamlit()
    if info:
        try:
            return service_account.Credentials.from_service_account_info(dict(info))
        except Exception as exc:  # pragma: no cover - logged and skipped
            logger.warning("Failed to construct Google credentials from mapping: %s", exc)
    return None


__all__ = ["get_service_account_credentials", "parse_service_account_info"]
