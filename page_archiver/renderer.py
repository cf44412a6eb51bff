"""Render pages in headless Chromium and capture a content snapshot."""

from __future__ import annotations

import logging
from typing import Protocol

from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import ArchiveConfig
from .content import extract_snapshot
from .errors import RenderFailure
from .models import PageSnapshot

logger = logging.getLogger("page_archiver")


class Renderer(Protocol):
    async def render(self, url: str) -> PageSnapshot:
        ...


class PlaywrightRenderer:
    """Load each page in its own browser, released before ``render`` returns."""

    def __init__(self, config: ArchiveConfig) -> None:
        self.config = config

    async def render(self, url: str) -> PageSnapshot:
        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(
                    headless=True,
                    executable_path=self.config.browser_executable,
                    args=list(self.config.browser_args),
                )
                try:
                    context = await browser.new_context(
                        viewport={
                            "width": self.config.viewport_width,
                            "height": self.config.viewport_height,
                        }
                    )
                    page = await context.new_page()
                    page.set_default_navigation_timeout(
                        self.config.navigation_timeout * 1000
                    )
                    logger.info("Loading %s", url)
                    await page.goto(url, wait_until="networkidle")
                    if self.config.wait_after_load:
                        await page.wait_for_timeout(
                            int(self.config.wait_after_load * 1000)
                        )
                    title = await page.title()
                    html = await page.content()
                    final_url = page.url
                finally:
                    await browser.close()
        except PlaywrightTimeoutError as exc:
            logger.error("Timeout while loading %s: %s", url, exc)
            raise RenderFailure(url, exc) from exc
        except PlaywrightError as exc:
            logger.error("Failed to load %s: %s", url, exc)
            raise RenderFailure(url, exc) from exc

        snapshot = extract_snapshot(html, final_url, title)
        logger.debug(
            "Captured %d content elements from %s", len(snapshot.elements), final_url
        )
        return snapshot
