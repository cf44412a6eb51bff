"""Configuration objects and constants for the page archiver."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger("page_archiver")

DEFAULT_MAX_IMAGES = 20
DEFAULT_NAVIGATION_TIMEOUT = 60.0
DEFAULT_BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
)


@dataclass
class ArchiveConfig:
    """Top-level settings that control rendering, image fetching and archiving."""

    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT
    wait_after_load: float = 0.0
    viewport_width: int = 1920
    viewport_height: int = 1080
    max_images: int = DEFAULT_MAX_IMAGES
    image_concurrency: int = 4
    image_timeout: float = 15.0
    compression_level: int = 9
    text_entry_name: str = "content.md"
    image_prefix: str = "images"
    browser_executable: Optional[str] = None
    browser_args: Tuple[str, ...] = DEFAULT_BROWSER_ARGS

    @classmethod
    def from_env(cls) -> "ArchiveConfig":
        """Build a config, honouring PAGE_ARCHIVER_* environment overrides."""
        config = cls()
        executable = os.getenv("PAGE_ARCHIVER_BROWSER_PATH")
        if executable:
            config.browser_executable = executable
        config.navigation_timeout = _env_number(
            "PAGE_ARCHIVER_NAV_TIMEOUT", config.navigation_timeout, float
        )
        config.max_images = _env_number(
            "PAGE_ARCHIVER_MAX_IMAGES", config.max_images, int
        )
        return config


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(
            "%s is set to %r which is not a valid number; falling back to %s",
            name,
            raw,
            default,
        )
        return default
