"""
Primitive readers for the iPod record format.

All integers are 32-bit little-endian. Readers take a buffer and an offset
into it and raise TruncatedRead when the buffer ends early.
"""

import struct
from datetime import datetime

from .exceptions import TagMismatch, TruncatedRead

# Seconds between 1904-01-01 (HFS epoch) and 1970-01-01 (Unix epoch)
HFS_EPOCH_DELTA = 2_082_844_800

# Declared string lengths at or above this are treated as corrupt
MAX_STRING_LENGTH = 10_000

ENCODING_UTF16 = 1

_U32 = struct.Struct("<I")


def read_u32_le(data: bytes, offset: int = 0) -> int:
    """Read an unsigned 32-bit little-endian integer at offset."""
    available = max(0, len(data) - offset)
    if offset < 0 or available < 4:
        raise TruncatedRead(4, available, offset)
    return _U32.unpack_from(data, offset)[0]


def read_tag(data: bytes, offset: int = 0) -> str:
    """Read a 4-character ASCII record marker at offset."""
    available = max(0, len(data) - offset)
    if offset < 0 or available < 4:
        raise TruncatedRead(4, available, offset)
    return data[offset : offset + 4].decode("ascii", errors="replace")


def expect_tag(data: bytes, expected: str, offset: int = 0) -> None:
    """Raise TagMismatch unless the marker at offset equals expected."""
    found = read_tag(data, offset)
    if found != expected:
        raise TagMismatch(expected, found, offset)


def is_plausible_length(length: int) -> bool:
    return 0 < length < MAX_STRING_LENGTH


def read_string(data: bytes, length: int, encoding_code: int, offset: int = 0) -> str:
    """Decode a length-prefixed mhod string payload.

    encoding_code 1 is UTF-16LE, anything else UTF-8. Null code points are
    stripped. Implausible lengths yield an empty string rather than an error.

    Raises:
        TruncatedRead: If the buffer holds fewer than length bytes at offset
    """
    if not is_plausible_length(length):
        return ""

    available = max(0, len(data) - offset)
    if available < length:
        raise TruncatedRead(length, available, offset)

    raw = data[offset : offset + length]
    if encoding_code == ENCODING_UTF16:
        # A dangling odd byte cannot form a code unit
        text = raw[: len(raw) & ~1].decode("utf-16-le", errors="replace")
    else:
        text = raw.decode("utf-8", errors="replace")
    return text.replace("\x00", "")


def local_utc_offset(now: datetime | None = None) -> int:
    """Current "UTC minus local time" in seconds (positive west of Greenwich).

    This is the correction historically added to iPod timestamps. It is taken
    at decode time, not at the timestamp's own date.
    """
    if now is None or now.utcoffset() is None:
        now = (now or datetime.now()).astimezone()
    offset = now.utcoffset()
    return -int(offset.total_seconds()) if offset is not None else 0


def hfs_to_unix(hfs_seconds: int, utc_offset: int) -> int:
    """Convert an HFS timestamp to Unix seconds with the legacy local shift.

    0 is the "never played" sentinel and maps to 0.
    """
    if hfs_seconds == 0:
        return 0
    return hfs_seconds - HFS_EPOCH_DELTA + utc_offset
