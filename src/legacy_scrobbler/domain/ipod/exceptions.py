"""iPod database exceptions for error handling.

Sub-record errors (TruncatedRead, TagMismatch) are raised by the primitive
readers and caught at record boundaries by the decoder, which records them
and skips by declared size. Container-level errors propagate to the caller.
"""


class IpodDatabaseError(Exception):
    """Base exception for iPod database decoding."""

    pass


class TruncatedRead(IpodDatabaseError):
    """Raised when a buffer is shorter than the field being read."""

    def __init__(self, needed: int, available: int, offset: int | None = None):
        self.needed = needed
        self.available = available
        self.offset = offset
        where = f" at offset {offset}" if offset is not None else ""
        super().__init__(
            f"Truncated read{where}: needed {needed} bytes, got {available}"
        )


class TagMismatch(IpodDatabaseError):
    """Raised when an expected record marker is absent."""

    def __init__(self, expected: str, found: str, offset: int | None = None):
        self.expected = expected
        self.found = found
        self.offset = offset
        where = f" at offset {offset}" if offset is not None else ""
        super().__init__(f"Expected '{expected}', got '{found}'{where}")


class InvalidContainer(IpodDatabaseError):
    """Raised when a compressed database lacks its mhbd header."""

    pass


class DecompressionError(IpodDatabaseError):
    """Raised when the embedded deflate stream cannot be inflated."""

    pass


class FilesystemError(IpodDatabaseError):
    """Raised when a database file cannot be opened or read."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")
