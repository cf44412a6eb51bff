"""Streaming ZIP writer and the output sinks it writes to."""

from __future__ import annotations

import asyncio
import logging
import zipfile
from pathlib import Path
from typing import AsyncIterator, List, Optional, Protocol, Union

from .errors import ArchiveWriteFailure

logger = logging.getLogger("page_archiver")


class ArchiveSink(Protocol):
    async def write(self, chunk: bytes) -> None:
        ...

    async def close(self) -> None:
        ...


class _ChunkBuffer:
    """Write-only, non-seekable target for ``zipfile``.

    ``zipfile`` falls back to data descriptors when the target cannot seek,
    so each entry can leave the process as soon as it is written.
    """

    def __init__(self) -> None:
        self._chunks: List[bytes] = []

    def write(self, data: bytes) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


class ArchiveStreamer:
    """Incrementally write a ZIP container to an async sink."""

    def __init__(self, sink: ArchiveSink, compression_level: int = 9) -> None:
        self.sink = sink
        self.bytes_written = 0
        self.entries: List[str] = []
        self._buffer = _ChunkBuffer()
        self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(
            self._buffer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
        )

    @property
    def started(self) -> bool:
        return self.bytes_written > 0

    @property
    def finalized(self) -> bool:
        return self._zip is None

    async def append(self, name: str, data: Union[str, bytes]) -> None:
        if self._zip is None:
            raise RuntimeError("Cannot append to a finalized archive")
        payload = data.encode("utf-8") if isinstance(data, str) else data
        self._zip.writestr(name, payload)
        self.entries.append(name)
        await self._flush()
        logger.debug("Archived %s (%d bytes)", name, len(payload))

    async def finalize(self) -> None:
        """Write the central directory and close the sink."""
        if self._zip is None:
            raise RuntimeError("Archive already finalized")
        self._zip.close()
        self._zip = None
        await self._flush()
        try:
            await self.sink.close()
        except ArchiveWriteFailure:
            raise
        except Exception as exc:
            raise ArchiveWriteFailure(f"Failed to close archive sink: {exc}") from exc

    async def _flush(self) -> None:
        data = self._buffer.drain()
        if not data:
            return
        try:
            await self.sink.write(data)
        except ArchiveWriteFailure:
            raise
        except Exception as exc:
            raise ArchiveWriteFailure(f"Failed to write archive data: {exc}") from exc
        self.bytes_written += len(data)


class FileSink:
    """Sink writing the archive to a local file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("wb")

    async def write(self, chunk: bytes) -> None:
        self._handle.write(chunk)

    async def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


_END_OF_STREAM = None


class ChannelSink:
    """Sink bridging the archive to a streamed response through a bounded queue."""

    def __init__(self, max_chunks: int = 8) -> None:
        self._queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue(maxsize=max_chunks)
        self._abandoned = False
        self._closed = False

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def abandon(self) -> None:
        """Mark the consumer as gone; later writes fail."""
        self._abandoned = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def write(self, chunk: bytes) -> None:
        if self._abandoned:
            raise ArchiveWriteFailure("Receiver disconnected")
        if self._closed:
            raise ArchiveWriteFailure("Sink already closed")
        await self._queue.put(chunk)

    async def close(self) -> None:
        if self._closed:
            return
        if self._abandoned:
            raise ArchiveWriteFailure("Receiver disconnected")
        self._closed = True
        await self._queue.put(_END_OF_STREAM)

    async def end(self) -> None:
        """End the stream without finalizing, leaving a truncated archive."""
        if self._closed or self._abandoned:
            return
        self._closed = True
        await self._queue.put(_END_OF_STREAM)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _END_OF_STREAM:
                return
            yield chunk
