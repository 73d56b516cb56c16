"""
iPod database domain models.

Contains data structures for decoded tracks, auxiliary play counts and
reconstructed play events.
"""

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_TRACK_LENGTH_MS = 180_000


class DatabaseFormat(Enum):
    """On-disk layout of the track database."""

    COMPRESSED = "iTunesCDB"
    UNCOMPRESSED = "iTunesDB"


@dataclass(frozen=True)
class TrackRecord:
    """One media item decoded from an mhit record.

    sequence_id is the join key against Play Counts entries. It is the
    scan-order index on the uncompressed path and the embedded track
    identifier on the compressed path, so ids are never comparable across
    formats.
    """

    sequence_id: int
    title: str = ""
    artist: str = ""
    album: str = ""
    length_ms: int = DEFAULT_TRACK_LENGTH_MS
    play_count: int = 0
    last_played: int = 0  # Unix seconds (legacy local-time semantics), 0 = never

    def __post_init__(self) -> None:
        if not self.length_ms:
            object.__setattr__(self, "length_ms", DEFAULT_TRACK_LENGTH_MS)


@dataclass(frozen=True)
class PlayCountEntry:
    """One fixed-stride entry from the Play Counts file."""

    index: int  # Position in file (0-based)
    play_count: int
    last_played: int  # Unix seconds, 0 when play_count is 0


@dataclass(frozen=True)
class ScrobbleEvent:
    """A single reconstructed play of a track."""

    track: TrackRecord
    played_at: int  # Unix seconds


@dataclass(frozen=True)
class DecodeIssue:
    """A sub-record problem that was skipped during decoding."""

    offset: int
    record: str  # 'mhit' | 'mhod' | 'mhlt' | 'mhsd'
    message: str


@dataclass
class DecodeResult:
    """Tracks extracted from one database, plus what had to be skipped."""

    format: DatabaseFormat
    tracks: list[TrackRecord] = field(default_factory=list)
    issues: list[DecodeIssue] = field(default_factory=list)
