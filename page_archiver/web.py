"""HTTP front end: POST a page address, receive a streamed ZIP archive."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .archive import ChannelSink
from .config import ArchiveConfig
from .errors import ArchiveWriteFailure, InvalidInput, RenderFailure
from .models import PageSnapshot
from .pipeline import ArchivePipeline

logger = logging.getLogger("page_archiver.web")

ARCHIVE_FILENAME = "scraped-site.zip"

app = FastAPI(title="Page Archiver", docs_url=None, redoc_url=None)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("PAGE_ARCHIVER_CORS_ORIGINS", "*").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


def build_pipeline() -> ArchivePipeline:
    return ArchivePipeline(ArchiveConfig.from_env())


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _produce(pipeline: ArchivePipeline, snapshot: PageSnapshot, sink: ChannelSink) -> None:
    try:
        await pipeline.stream(snapshot, sink)
    except ArchiveWriteFailure as exc:
        logger.warning("Archive stream for %s ended early: %s", snapshot.source_url, exc)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Archive stream for %s failed", snapshot.source_url)
    finally:
        pipeline.fetcher.close()
        await sink.end()


async def _relay(pipeline: ArchivePipeline, snapshot: PageSnapshot) -> AsyncIterator[bytes]:
    """Start the producer on first iteration and relay its chunks.

    The producer only exists while this iterator runs, so a response that is
    never sent never starts any fetches.
    """
    sink = ChannelSink()
    producer = asyncio.create_task(_produce(pipeline, snapshot, sink))
    completed = False
    try:
        async for chunk in sink.iter_chunks():
            yield chunk
        completed = True
    finally:
        if not completed:
            logger.info("Client disconnected; abandoning archive")
            sink.abandon()
            producer.cancel()


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return error_response(400, "URL is required")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/scrape")
async def scrape(request: Optional[ScrapeRequest] = None):
    url = request.url if request else None
    pipeline = build_pipeline()
    try:
        logger.info("Starting scrape for: %s", url)
        snapshot = await pipeline.render(url)
    except InvalidInput as exc:
        pipeline.fetcher.close()
        return error_response(400, str(exc))
    except RenderFailure as exc:
        pipeline.fetcher.close()
        logger.error("Scraping error: %s", exc)
        return error_response(500, "Failed to scrape website")

    return StreamingResponse(
        _relay(pipeline, snapshot),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILENAME}"'},
    )
