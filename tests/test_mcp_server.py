from pathlib import Path

from page_archiver.mcp_server import format_summary
from page_archiver.models import ArchiveResult


def test_format_summary_lists_missing_images():
    result = ArchiveResult(
        url="https://example.com/",
        title="Home",
        entries=["content.md", "images/image-1.png"],
        images_attempted=2,
        images_written=1,
        failed_images=["https://example.com/0.png"],
    )

    summary = format_summary(Path("/tmp/site.zip"), result)

    assert summary.startswith("# Home\n")
    assert "- images: 1/2" in summary
    assert "- missing image: https://example.com/0.png" in summary
