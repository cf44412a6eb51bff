"""Data models used throughout the archiving pipeline."""

from __future__ import annotations

import enum
import posixpath
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
from urllib.parse import urlparse

HEADING_TAGS = ("h1", "h2", "h3")
CONTENT_TAGS = HEADING_TAGS + ("p", "li", "a", "img", "button")
DEFAULT_IMAGE_EXTENSION = ".jpg"


@dataclass(frozen=True)
class ElementView:
    """Read-only view of one content-bearing element of the rendered page."""

    tag: str
    text: str = ""
    href: Optional[str] = None
    src: Optional[str] = None
    alt: Optional[str] = None

    @property
    def level(self) -> Optional[int]:
        if self.tag in HEADING_TAGS:
            return int(self.tag[1])
        return None


@dataclass(frozen=True)
class PageSnapshot:
    """Rendered page contents captured once the page is network-idle."""

    source_url: str
    title: str
    description: str
    elements: Tuple[ElementView, ...] = ()


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    def to_markdown(self) -> str:
        return f"{'#' * self.level} {self.text}\n\n"


@dataclass(frozen=True)
class Paragraph:
    text: str

    def to_markdown(self) -> str:
        return f"{self.text}\n\n"


@dataclass(frozen=True)
class ListItem:
    text: str

    def to_markdown(self) -> str:
        return f"- {self.text}\n"


@dataclass(frozen=True)
class Link:
    text: str
    target: str

    def to_markdown(self) -> str:
        return f"[{self.text}]({self.target})\n\n"


@dataclass(frozen=True)
class ImageRef:
    alt: str
    source_url: str

    def to_markdown(self) -> str:
        return f"![{self.alt}]({self.source_url})\n\n"


ContentBlock = Union[Heading, Paragraph, ListItem, Link, ImageRef]


def image_extension(url: str) -> str:
    """Return the extension of the URL path, falling back to ``.jpg``."""
    extension = posixpath.splitext(urlparse(url).path)[1]
    return extension or DEFAULT_IMAGE_EXTENSION


@dataclass(frozen=True)
class ImageTask:
    """A distinct image address and the index that names its archive entry."""

    index: int
    url: str
    prefix: str = "images"

    @property
    def entry_name(self) -> str:
        return f"{self.prefix}/image-{self.index}{image_extension(self.url)}"


@dataclass
class FetchedImage:
    task: ImageTask
    data: bytes


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    data: bytes


class PipelineState(enum.Enum):
    IDLE = "idle"
    RENDERING = "rendering"
    SERIALIZING = "serializing"
    COLLECTING_IMAGES = "collecting_images"
    ARCHIVING = "archiving"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass
class ArchiveResult:
    """Summary of a completed archive run."""

    url: str
    title: str
    entries: List[str] = field(default_factory=list)
    images_attempted: int = 0
    images_written: int = 0
    failed_images: List[str] = field(default_factory=list)
    bytes_written: int = 0
    total_seconds: float = 0.0
