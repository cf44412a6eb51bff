"""Exceptions raised across the archiving pipeline."""

from __future__ import annotations


class PageArchiverError(Exception):
    pass


class InvalidInput(PageArchiverError, ValueError):
    pass


class RenderFailure(PageArchiverError):
    """The page could not be loaded or read within the navigation timeout."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f"Failed to render {url}: {cause}")
        self.url = url
        self.cause = cause


class ImageFetchFailure(PageArchiverError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch image {url}: {reason}")
        self.url = url
        self.reason = reason


class ArchiveWriteFailure(PageArchiverError):
    pass
