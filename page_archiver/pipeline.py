"""High-level orchestration for rendering a page and streaming its archive."""

from __future__ import annotations

import logging
import time
from contextlib import aclosing
from pathlib import Path
from typing import Optional

from .archive import ArchiveSink, ArchiveStreamer, FileSink
from .config import ArchiveConfig
from .errors import InvalidInput, RenderFailure
from .images import ImageFetcher, collect_image_tasks, fetch_images
from .markdown import compose_document
from .models import ArchiveResult, PageSnapshot, PipelineState
from .renderer import PlaywrightRenderer, Renderer

logger = logging.getLogger("page_archiver")


def validate_url(url: Optional[str]) -> str:
    if url is None or not url.strip():
        raise InvalidInput("URL is required")
    return url.strip()


class ArchivePipeline:
    """Render one page and stream it into a ZIP archive.

    ``render`` finishes before any byte is handed to a sink, so render
    failures can still be reported as structured errors. Everything after
    the first append is best effort: a sink failure aborts the run and
    leaves a truncated archive behind.
    """

    def __init__(
        self,
        config: Optional[ArchiveConfig] = None,
        renderer: Optional[Renderer] = None,
        fetcher: Optional[ImageFetcher] = None,
    ) -> None:
        self.config = config or ArchiveConfig()
        self.renderer = renderer or PlaywrightRenderer(self.config)
        self.fetcher = fetcher or ImageFetcher(timeout=self.config.image_timeout)
        self.state = PipelineState.IDLE
        self._start_time: Optional[float] = None

    def _transition(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    async def render(self, url: Optional[str]) -> PageSnapshot:
        url = validate_url(url)
        self._start_time = time.perf_counter()
        self._transition(PipelineState.RENDERING)
        try:
            return await self.renderer.render(url)
        except RenderFailure:
            self._transition(PipelineState.FAILED)
            raise
        except Exception as exc:  # pylint: disable=broad-except
            self._transition(PipelineState.FAILED)
            raise RenderFailure(url, exc) from exc

    async def stream(self, snapshot: PageSnapshot, sink: ArchiveSink) -> ArchiveResult:
        """Write the text entry, then every fetched image, then finalize."""
        if self._start_time is None:
            self._start_time = time.perf_counter()
        result = ArchiveResult(url=snapshot.source_url, title=snapshot.title)
        streamer = ArchiveStreamer(sink, compression_level=self.config.compression_level)
        written = set()
        try:
            self._transition(PipelineState.SERIALIZING)
            document = compose_document(snapshot)

            self._transition(PipelineState.COLLECTING_IMAGES)
            tasks = collect_image_tasks(
                snapshot,
                limit=self.config.max_images,
                prefix=self.config.image_prefix,
            )
            result.images_attempted = len(tasks)

            self._transition(PipelineState.ARCHIVING)
            await streamer.append(self.config.text_entry_name, document)

            images = fetch_images(
                tasks, self.fetcher, concurrency=self.config.image_concurrency
            )
            async with aclosing(images):
                async for image in images:
                    await streamer.append(image.task.entry_name, image.data)
                    written.add(image.task.index)

            await streamer.finalize()
        except BaseException:
            self._transition(PipelineState.FAILED)
            logger.error(
                "Archive for %s aborted after %d bytes",
                snapshot.source_url,
                streamer.bytes_written,
            )
            raise

        self._transition(PipelineState.FINALIZED)
        result.entries = list(streamer.entries)
        result.images_written = len(written)
        result.failed_images = [task.url for task in tasks if task.index not in written]
        result.bytes_written = streamer.bytes_written
        result.total_seconds = time.perf_counter() - self._start_time
        logger.info(
            "Archived %s: %d/%d images, %d bytes in %.2fs",
            result.url,
            result.images_written,
            result.images_attempted,
            result.bytes_written,
            result.total_seconds,
        )
        return result

    async def run(self, url: Optional[str], sink: ArchiveSink) -> ArchiveResult:
        snapshot = await self.render(url)
        return await self.stream(snapshot, sink)


async def archive_to_file(pipeline: ArchivePipeline, url: Optional[str], output: Path) -> ArchiveResult:
    """Render first, then open the output file, so failed renders leave nothing behind."""
    try:
        snapshot = await pipeline.render(url)
        sink = FileSink(output)
        try:
            return await pipeline.stream(snapshot, sink)
        except BaseException:
            await sink.close()
            output.unlink(missing_ok=True)
            raise
    finally:
        pipeline.fetcher.close()
