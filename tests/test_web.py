import asyncio
import io
import zipfile

from fastapi.testclient import TestClient

from conftest import FakeSession, StubRenderer, img, make_snapshot

from page_archiver import web as web_app
from page_archiver.config import ArchiveConfig
from page_archiver.errors import RenderFailure
from page_archiver.images import ImageFetcher
from page_archiver.models import ElementView, PipelineState
from page_archiver.pipeline import ArchivePipeline


def _use_pipeline(monkeypatch, snapshot=None, error=None, responses=None):
    renderer = StubRenderer(snapshot=snapshot, error=error)
    session = FakeSession(responses)

    def build_pipeline():
        return ArchivePipeline(
            ArchiveConfig(),
            renderer=renderer,
            fetcher=ImageFetcher(session=session),
        )

    monkeypatch.setattr(web_app, "build_pipeline", build_pipeline)
    return renderer, session


def test_missing_url_is_a_client_error(monkeypatch):
    renderer, _ = _use_pipeline(monkeypatch, make_snapshot())
    client = TestClient(web_app.app)

    for body in ({}, {"url": ""}):
        response = client.post("/api/scrape", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "URL is required"}
    assert renderer.calls == []


def test_render_failure_returns_structured_error(monkeypatch):
    error = RenderFailure("https://example.com/", TimeoutError("timed out"))
    _use_pipeline(monkeypatch, error=error)
    client = TestClient(web_app.app)

    response = client.post("/api/scrape", json={"url": "https://example.com/"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"error": "Failed to scrape website"}


def test_success_streams_zip_archive(monkeypatch):
    snapshot = make_snapshot(
        ElementView(tag="h1", text="Hi"),
        img("https://example.com/a.png"),
        img("https://example.com/missing.png"),
    )
    _, session = _use_pipeline(
        monkeypatch, snapshot, responses={"https://example.com/a.png": b"png"}
    )
    client = TestClient(web_app.app)

    response = client.post("/api/scrape", json={"url": "https://example.com/"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert 'filename="scraped-site.zip"' in response.headers["content-disposition"]
    archive = zipfile.ZipFile(io.BytesIO(response.content))
    assert archive.namelist() == ["content.md", "images/image-0.png"]
    assert archive.read("images/image-0.png") == b"png"
    assert archive.read("content.md").startswith(b"# Home\n\nWelcome\n\n## Content\n\n# Hi\n\n")
    assert session.closed


def test_health():
    client = TestClient(web_app.app)
    assert client.get("/health").json() == {"status": "ok"}


def _pending_tasks():
    return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]


async def _settle():
    for _ in range(20):
        if not _pending_tasks():
            return
        await asyncio.sleep(0.01)


def test_unsent_response_starts_no_work(monkeypatch):
    urls = [f"https://example.com/{i}.png" for i in range(20)]
    _, session = _use_pipeline(
        monkeypatch,
        make_snapshot(*[img(url) for url in urls]),
        responses={url: b"x" for url in urls},
    )

    async def _run():
        response = await web_app.scrape(web_app.ScrapeRequest(url="https://example.com/"))
        assert response.media_type == "application/zip"
        await _settle()
        return _pending_tasks()

    assert asyncio.run(_run()) == []
    assert session.calls == []


def test_disconnect_abandons_archive_and_stops_fetching():
    urls = [f"https://example.com/{i}.png" for i in range(20)]
    session = FakeSession({url: b"x" * 64 for url in urls})
    pipeline = ArchivePipeline(
        ArchiveConfig(),
        renderer=StubRenderer(),
        fetcher=ImageFetcher(session=session),
    )
    snapshot = make_snapshot(*[img(url) for url in urls])

    async def _run():
        body = web_app._relay(pipeline, snapshot)
        first = await body.__anext__()
        await body.aclose()
        await _settle()
        return first, _pending_tasks()

    first, pending = asyncio.run(_run())

    assert first
    assert pending == []
    assert pipeline.state is PipelineState.FAILED
    assert len(session.calls) < len(urls)
    assert session.closed


def test_malformed_body_is_a_client_error():
    client = TestClient(web_app.app)

    for body in ({"url": 5}, ["https://example.com/"]):
        response = client.post("/api/scrape", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "URL is required"}
