import threading

import pytest
import requests

from page_archiver.config import ArchiveConfig
from page_archiver.images import ImageFetcher
from page_archiver.models import ElementView, PageSnapshot


class FakeResponse:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content


class FakeSession:
    """Stand-in for requests.Session keyed by URL.

    Values are bytes (200), an int status code, or an exception to raise.
    Unknown URLs answer 404.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None):
        with self._lock:
            self.calls.append(url)
        outcome = self.responses.get(url, 404)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return FakeResponse(status_code=outcome)
        return FakeResponse(content=outcome)

    def close(self):
        self.closed = True


class MemorySink:
    def __init__(self, fail_after=None):
        self.chunks = []
        self.closed = False
        self.fail_after = fail_after

    async def write(self, chunk):
        if self.fail_after is not None and len(self.chunks) >= self.fail_after:
            raise ConnectionResetError("receiver went away")
        self.chunks.append(chunk)

    async def close(self):
        self.closed = True

    @property
    def data(self):
        return b"".join(self.chunks)


class StubRenderer:
    def __init__(self, snapshot=None, error=None):
        self.snapshot = snapshot
        self.error = error
        self.calls = []

    async def render(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.snapshot


def make_snapshot(*elements, title="Home", description="Welcome", url="https://example.com/"):
    return PageSnapshot(
        source_url=url,
        title=title,
        description=description,
        elements=tuple(elements),
    )


def img(src, alt=None):
    return ElementView(tag="img", src=src, alt=alt)


@pytest.fixture
def config():
    return ArchiveConfig()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fetcher(session):
    return ImageFetcher(timeout=1.0, session=session)


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
