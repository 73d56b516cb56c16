"""
iTunesCDB container unwrapping.

The compressed database is an mhbd header followed by a zlib stream. The
header size field tells where the stream starts; the 2-byte zlib prefix is
skipped and the rest is inflated as raw deflate.
"""

import zlib

from loguru import logger

from .byte_source import ByteSource, MemoryByteSource
from .codec import read_tag, read_u32_le
from .exceptions import DecompressionError, InvalidContainer, TruncatedRead

# Upper bound on compressed payload read from disk
MAX_PAYLOAD_SIZE = 50 * 1024 * 1024

ZLIB_PREFIX_SIZE = 2


def unwrap_compressed(source: ByteSource, max_payload: int = MAX_PAYLOAD_SIZE) -> MemoryByteSource:
    """Inflate the payload of a compressed database.

    Raises:
        InvalidContainer: If the file does not start with an mhbd header
        DecompressionError: If the payload is not a complete deflate stream
    """
    head = source.read(0, 8)
    try:
        tag = read_tag(head, 0)
        header_size = read_u32_le(head, 4)
    except TruncatedRead as e:
        raise InvalidContainer(f"Missing mhbd header: {e}") from e
    if tag != "mhbd":
        raise InvalidContainer(f"Expected 'mhbd' at offset 0, got {tag!r}")

    payload = source.read(header_size, max_payload)
    logger.debug(f"Compressed payload: {len(payload)} bytes at offset {header_size}")
    if len(payload) <= ZLIB_PREFIX_SIZE:
        raise DecompressionError(f"No compressed payload after {header_size}-byte header")

    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        inflated = inflater.decompress(payload[ZLIB_PREFIX_SIZE:])
        inflated += inflater.flush()
    except zlib.error as e:
        raise DecompressionError(f"Inflate failed: {e}") from e
    if not inflater.eof:
        raise DecompressionError("Deflate stream ended before its final block")

    logger.info(f"Inflated {len(payload)} bytes to {len(inflated)} bytes")
    return MemoryByteSource(inflated)
