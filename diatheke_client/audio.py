"""Audio sources and sinks used by the streaming handlers."""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class AudioSource(Protocol):
    """Finite sequence of fixed-size audio chunks, restarted on every call."""

    def chunks(self) -> AsyncIterator[bytes]:
        """Yield the next chunk until the source is exhausted."""
        ...


@runtime_checkable
class AudioSink(Protocol):
    """Destination for one reply's synthesized audio."""

    async def write(self, chunk: bytes) -> None:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class AudioOutput(Protocol):
    """Opens a fresh sink for each reply."""

    async def open_sink(self) -> AudioSink:
        ...


def _check_chunk_size(chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return chunk_size


class FileAudioSource:
    """Reads raw audio from a file in chunks of ``chunk_size`` bytes."""

    def __init__(self, path: str | Path, chunk_size: int) -> None:
        self.path = Path(path)
        self.chunk_size = _check_chunk_size(chunk_size)

    async def chunks(self) -> AsyncIterator[bytes]:
        f: BinaryIO = await asyncio.to_thread(self.path.open, "rb")
        try:
            while True:
                chunk = await asyncio.to_thread(f.read, self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            f.close()


class BytesAudioSource:
    """Serves audio already held in memory."""

    def __init__(self, data: bytes, chunk_size: int) -> None:
        self.data = data
        self.chunk_size = _check_chunk_size(chunk_size)

    async def chunks(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self.data), self.chunk_size):
            yield self.data[start:start + self.chunk_size]


class FileAudioSink:
    """Writes audio frames to a single file."""

    def __init__(self, f: BinaryIO, path: Path) -> None:
        self._file = f
        self.path = path
        self.bytes_written = 0

    async def write(self, chunk: bytes) -> None:
        await asyncio.to_thread(self._file.write, chunk)
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        self._file.close()
        logger.debug("Wrote %d bytes to %s", self.bytes_written, self.path)


class FileAudioOutput:
    """Saves each reply to its own numbered file under ``directory``."""

    def __init__(self, directory: str | Path, prefix: str = "reply") -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self._count = 0

    async def open_sink(self) -> FileAudioSink:
        self._count += 1
        path = self.directory / f"{self.prefix}_{self._count:03d}.raw"
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
        f = await asyncio.to_thread(path.open, "wb")
        return FileAudioSink(f, path)
