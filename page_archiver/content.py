"""HTML extraction and metadata parsing for rendered pages."""

from __future__ import annotations

from typing import Iterator, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .models import CONTENT_TAGS, ElementView, PageSnapshot
from .utils import normalize_text

_NOISE_TAGS = ["script", "style", "noscript", "template"]
_BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5",
    "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
    "table", "td", "th", "tr", "ul",
]


def _clean_content(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove tags whose text never shows up on screen.

    Line breaks and block boundaries become newlines so that text from
    neighbouring blocks does not run together; inline markup is left alone.
    """
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    for br in soup("br"):
        br.replace_with("\n")
    for block in soup(_BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")
    return soup


def _element_view(element: Tag, base_url: str) -> ElementView:
    tag = element.name.lower()
    if tag == "img":
        return ElementView(
            tag=tag,
            src=element.get("src") or None,
            alt=element.get("alt"),
        )
    text = normalize_text(element.get_text())
    if tag == "a":
        href = element.get("href")
        return ElementView(
            tag=tag,
            text=text,
            href=urljoin(base_url, href) if href else None,
        )
    return ElementView(tag=tag, text=text)


def iter_content_elements(soup: BeautifulSoup, base_url: str) -> Iterator[ElementView]:
    """Yield content-bearing elements in document order, nested matches included."""
    for element in soup.find_all(list(CONTENT_TAGS)):
        yield _element_view(element, base_url)


def _meta_description(soup: BeautifulSoup) -> str:
    tag = soup.find("meta", attrs={"name": "description"})
    if tag and tag.get("content") is not None:
        return tag["content"]
    return ""


def extract_snapshot(
    html: str,
    source_url: str,
    title: Optional[str] = None,
) -> PageSnapshot:
    """Build a PageSnapshot from rendered HTML."""
    soup = _clean_content(BeautifulSoup(html, "html.parser"))

    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    return PageSnapshot(
        source_url=source_url,
        title=title or "",
        description=_meta_description(soup),
        elements=tuple(iter_content_elements(soup, source_url)),
    )
