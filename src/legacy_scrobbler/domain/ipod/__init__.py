"""iPod database decoding and listening-history reconstruction.

Public entry points:
- read_tracks(path): decode tracks with play data merged
- get_played_tracks(path): tracks with plays, newest first
- get_recent_plays(path): one ScrobbleEvent per play, newest first
"""

from .byte_source import ByteSource, FileByteSource, MemoryByteSource
from .codec import hfs_to_unix, local_utc_offset
from .container import unwrap_compressed
from .exceptions import (
    DecompressionError,
    FilesystemError,
    InvalidContainer,
    IpodDatabaseError,
    TagMismatch,
    TruncatedRead,
)
from .expander import expand_all, expand_plays
from .history import (
    assemble_history,
    detect_database,
    get_played_tracks,
    get_recent_plays,
    played_tracks,
    read_tracks,
)
from .models import (
    DatabaseFormat,
    DecodeIssue,
    DecodeResult,
    PlayCountEntry,
    ScrobbleEvent,
    TrackRecord,
)
from .play_counts import apply_play_counts, correlate_play_counts, read_play_counts
from .records import DecodeOptions, Traversal, decode_tracks

__all__ = [
    "ByteSource",
    "FileByteSource",
    "MemoryByteSource",
    "hfs_to_unix",
    "local_utc_offset",
    "unwrap_compressed",
    "DecompressionError",
    "FilesystemError",
    "InvalidContainer",
    "IpodDatabaseError",
    "TagMismatch",
    "TruncatedRead",
    "expand_all",
    "expand_plays",
    "assemble_history",
    "detect_database",
    "get_played_tracks",
    "get_recent_plays",
    "played_tracks",
    "read_tracks",
    "DatabaseFormat",
    "DecodeIssue",
    "DecodeResult",
    "PlayCountEntry",
    "ScrobbleEvent",
    "TrackRecord",
    "apply_play_counts",
    "correlate_play_counts",
    "read_play_counts",
    "DecodeOptions",
    "Traversal",
    "decode_tracks",
]
