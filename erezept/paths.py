"""Helpers for the optional context path the service is mounted under."""
from __future__ import annotations

from typing import Optional

from django.conf import settings


def normalize_context_path(context_path: Optional[str]) -> str:
    """Return ``context_path`` with a leading and without a trailing slash.

    Blank values and a bare ``/`` normalise to the empty string.
    """
    if context_path is None:
        return ""
    context_path = context_path.strip()
    if not context_path or context_path == "/":
        return ""
    if not context_path.startswith("/"):
        context_path = "/" + context_path
    return context_path.rstrip("/")


def configured_context_path() -> str:
    return normalize_context_path(getattr(settings, "SERVER_CONTEXT_PATH", ""))


def with_context_path(path: str, context_path: Optional[str] = None) -> str:
    """Prefix ``path`` with the (configured) context path."""
    if context_path is None:
        prefix = configured_context_path()
    else:
        prefix = normalize_context_path(context_path)
    return prefix + path
