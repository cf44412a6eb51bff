"""Utility helpers for text normalization and address checks."""

from __future__ import annotations

import re

WHITESPACE_PATTERN = re.compile(r"\s+")
HTTP_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def normalize_text(value: str | None) -> str:
    """Collapse whitespace runs to a single space and trim both ends."""
    if not value:
        return ""
    return WHITESPACE_PATTERN.sub(" ", value).strip()


def is_http_url(value: str | None) -> bool:
    return bool(value) and bool(HTTP_SCHEME_PATTERN.match(value))
