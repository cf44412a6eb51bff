"""MCP server exposing the page archiver as a tool."""

from __future__ import annotations

import logging
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .config import ArchiveConfig
from .pipeline import ArchivePipeline, archive_to_file

logger = logging.getLogger("page_archiver.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="page-archiver")


def format_summary(path: Path, result) -> str:
    lines = [
        f"# {result.title or result.url}",
        "",
        f"- archive: {path}",
        f"- source: {result.url}",
        f"- entries: {len(result.entries)}",
        f"- images: {result.images_written}/{result.images_attempted}",
    ]
    for url in result.failed_images:
        lines.append(f"- missing image: {url}")
    return "\n".join(lines) + "\n"


@mcp.tool()
async def archive_page(
    url: str,
    output_path: str,
) -> str:
    """Render a web page and write its text and images to a ZIP archive."""

    destination = Path(output_path).expanduser().resolve()
    pipeline = ArchivePipeline(ArchiveConfig.from_env())
    result = await archive_to_file(pipeline, url, destination)
    return format_summary(destination, result)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
