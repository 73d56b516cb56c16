"""
Random-access byte ranges for the record decoder.

The decoder only ever asks for "n bytes at offset"; a short read means the
range ends there. FileByteSource wraps a read-only handle, MemoryByteSource
wraps an inflated buffer.
"""

import os
from pathlib import Path
from typing import BinaryIO, Optional, Protocol

from loguru import logger

from .exceptions import FilesystemError


class ByteSource(Protocol):
    """Protocol for a readable, seekable byte range."""

    @property
    def size(self) -> int:
        """Total number of bytes in the range."""
        ...

    def read(self, offset: int, length: int) -> bytes:
        """Read up to length bytes at offset. Fewer bytes means end of range."""
        ...


class MemoryByteSource:
    """ByteSource over an in-memory buffer."""

    def __init__(self, data: bytes):
        self._data = memoryview(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, offset: int, length: int) -> bytes:
        if offset < 0 or length <= 0 or offset >= len(self._data):
            return b""
        return bytes(self._data[offset : offset + length])


class FileByteSource:
    """ByteSource over a file opened read-only.

    Use as a context manager; the handle is closed on every exit path.
    OSError from open/seek/read is wrapped in FilesystemError.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._handle: Optional[BinaryIO] = None
        self._size = 0

    def open(self) -> "FileByteSource":
        try:
            self._handle = open(self.path, "rb")
            self._size = os.fstat(self._handle.fileno()).st_size
        except OSError as e:
            raise FilesystemError(str(self.path), f"cannot open: {e}") from e
        logger.debug(f"Opened {self.path} ({self._size} bytes)")
        return self

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        try:
            handle.close()
        except OSError as e:
            raise FilesystemError(str(self.path), f"cannot close: {e}") from e

    def __enter__(self) -> "FileByteSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def size(self) -> int:
        return self._size

    def read(self, offset: int, length: int) -> bytes:
        if self._handle is None:
            raise FilesystemError(str(self.path), "read on closed source")
        if offset < 0 or length <= 0:
            return b""
        try:
            self._handle.seek(offset)
            return self._handle.read(length)
        except OSError as e:
            raise FilesystemError(str(self.path), f"read failed at {offset}: {e}") from e

    def read_into(self, offset: int, buffer: bytearray) -> int:
        """Fill buffer from offset, returning the number of bytes read.

        Lets the scanner reuse one window buffer across iterations.
        """
        if self._handle is None:
            raise FilesystemError(str(self.path), "read on closed source")
        try:
            self._handle.seek(offset)
            return self._handle.readinto(buffer) or 0
        except OSError as e:
            raise FilesystemError(str(self.path), f"read failed at {offset}: {e}") from e
