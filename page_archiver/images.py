"""Image collection and downloading utilities."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import AsyncIterator, Deque, Iterable, List, Optional, Tuple

import requests

from .config import DEFAULT_MAX_IMAGES
from .errors import ImageFetchFailure
from .models import FetchedImage, ImageTask, PageSnapshot, image_extension
from .utils import is_http_url

logger = logging.getLogger("page_archiver")

__all__ = [
    "ImageFetcher",
    "collect_image_tasks",
    "fetch_images",
    "image_extension",
]


def collect_image_tasks(
    snapshot: PageSnapshot,
    limit: int = DEFAULT_MAX_IMAGES,
    prefix: str = "images",
) -> List[ImageTask]:
    """Return distinct absolute http(s) image addresses in first-seen order, capped."""
    seen = set()
    addresses: List[str] = []
    for element in snapshot.elements:
        if element.tag != "img" or not is_http_url(element.src):
            continue
        if element.src in seen:
            continue
        seen.add(element.src)
        addresses.append(element.src)

    if len(addresses) > limit:
        logger.debug(
            "Found %d distinct images, keeping the first %d", len(addresses), limit
        )
    return [
        ImageTask(index=index, url=url, prefix=prefix)
        for index, url in enumerate(addresses[:limit])
    ]


class ImageFetcher:
    """Fetch raw image bytes with a shared session, one attempt per address."""

    def __init__(
        self,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self._session = session
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        with self._lock:
            if self._session is None:
                self._session = requests.Session()
            return self._session

    def fetch(self, url: str) -> bytes:
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ImageFetchFailure(url, str(exc)) from exc
        if resp.status_code != 200:
            raise ImageFetchFailure(url, f"status code {resp.status_code}")
        return resp.content

    def close(self) -> None:
        if self._session is not None:
            self._session.close()


async def fetch_images(
    tasks: Iterable[ImageTask],
    fetcher: ImageFetcher,
    concurrency: int = 4,
) -> AsyncIterator[FetchedImage]:
    """Fetch images with bounded parallelism, yielding successes in task order.

    At most ``concurrency`` requests are in flight. Failed fetches are logged
    and skipped without changing the index of any other task. Closing the
    generator cancels whatever is still outstanding.
    """
    remaining = iter(tasks)
    window: Deque[Tuple[ImageTask, "asyncio.Future[bytes]"]] = deque()

    def _schedule() -> None:
        task = next(remaining, None)
        if task is not None:
            future = asyncio.ensure_future(asyncio.to_thread(fetcher.fetch, task.url))
            window.append((task, future))

    for _ in range(max(1, concurrency)):
        _schedule()

    try:
        while window:
            task, future = window.popleft()
            try:
                data = await future
            except ImageFetchFailure as exc:
                logger.warning("%s", exc)
                _schedule()
                continue
            _schedule()
            logger.debug("Fetched %s (%d bytes)", task.url, len(data))
            yield FetchedImage(task=task, data=data)
    finally:
        for _, future in window:
            if future.done():
                if not future.cancelled():
                    future.exception()
            else:
                future.cancel()
