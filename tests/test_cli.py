from conftest import FakeSession, StubRenderer

from page_archiver import cli
from page_archiver.config import ArchiveConfig
from page_archiver.errors import RenderFailure
from page_archiver.images import ImageFetcher
from page_archiver.pipeline import ArchivePipeline


def test_archive_is_the_default_command():
    args = cli.parse_args(["https://example.com/", "--max-images", "5"])
    assert args.command == "archive"
    assert args.url == "https://example.com/"
    assert args.max_images == 5


def test_serve_command_parses():
    args = cli.parse_args(["serve", "--port", "8080"])
    assert args.command == "serve"
    assert args.port == 8080


def test_build_config_applies_flags_over_environment(monkeypatch):
    monkeypatch.setenv("PAGE_ARCHIVER_NAV_TIMEOUT", "30")
    monkeypatch.setenv("PAGE_ARCHIVER_MAX_IMAGES", "not-a-number")
    args = cli.parse_args(["archive", "https://example.com/", "--concurrency", "2"])

    config = cli.build_config(args)

    assert config.navigation_timeout == 30.0
    assert config.max_images == 20
    assert config.image_concurrency == 2

    args = cli.parse_args(["archive", "https://example.com/", "--timeout", "5"])
    assert cli.build_config(args).navigation_timeout == 5.0


def test_render_failure_exits_non_zero_without_output(monkeypatch, tmp_path):
    output = tmp_path / "site.zip"

    def fake_pipeline(config):
        return ArchivePipeline(
            config,
            renderer=StubRenderer(error=RenderFailure("https://example.com/", TimeoutError())),
            fetcher=ImageFetcher(session=FakeSession()),
        )

    monkeypatch.setattr(cli, "ArchivePipeline", fake_pipeline)
    args = cli.parse_args(["https://example.com/", "--output", str(output)])

    assert cli._run_archive(args) == 1
    assert not output.exists()


def test_config_defaults():
    config = ArchiveConfig()
    assert config.max_images == 20
    assert config.navigation_timeout == 60.0
    assert config.compression_level == 9
