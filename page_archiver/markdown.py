"""Markdown serialization of rendered page content."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .models import (
    ContentBlock,
    ElementView,
    Heading,
    ImageRef,
    Link,
    ListItem,
    PageSnapshot,
    Paragraph,
)

DEFAULT_IMAGE_ALT = "Image"


def element_to_block(element: ElementView) -> Optional[ContentBlock]:
    """Map one element to its content block, or None when it carries nothing."""
    if element.tag == "img":
        if not element.src:
            return None
        return ImageRef(alt=element.alt or DEFAULT_IMAGE_ALT, source_url=element.src)
    if not element.text:
        return None
    if element.tag == "a":
        if not element.href:
            return None
        return Link(text=element.text, target=element.href)
    if element.level is not None:
        return Heading(level=element.level, text=element.text)
    if element.tag == "li":
        return ListItem(text=element.text)
    return Paragraph(text=element.text)


def build_blocks(elements: Iterable[ElementView]) -> List[ContentBlock]:
    blocks: List[ContentBlock] = []
    for element in elements:
        block = element_to_block(element)
        if block is not None:
            blocks.append(block)
    return blocks


def render_blocks(blocks: Iterable[ContentBlock]) -> str:
    return "".join(block.to_markdown() for block in blocks)


def serialize_content(elements: Iterable[ElementView]) -> str:
    """Serialize elements in document order into the Markdown body."""
    return render_blocks(build_blocks(elements))


def compose_document(snapshot: PageSnapshot) -> str:
    """Generate the full text entry: title, description, then the content body."""
    body = serialize_content(snapshot.elements)
    return f"# {snapshot.title}\n\n{snapshot.description}\n\n## Content\n\n{body}"
