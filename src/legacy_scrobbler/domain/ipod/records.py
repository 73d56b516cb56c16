"""
Record decoder for the iPod tagged-record hierarchy.

mhbd (database) > mhsd (dataset) > mhlt (track list) > mhit (track item)
> mhod (metadata object). Every record starts with a 4-byte tag, a header
size and (except mhlt) a total size, all little-endian u32.

Two traversals share the same item decoder:

- SCAN: brute-force search for the "mhit" marker over fixed read windows.
  Used for uncompressed iTunesDB files read straight from disk, where the
  header chain is not reliable. Sequence ids are assigned in scan order.
- STRUCTURED: find the type-1 mhsd, then walk mhlt > mhit > mhod by
  declared sizes. Used for the inflated iTunesCDB payload. Sequence ids are
  the identifiers embedded in each mhit.

Sub-record failures are recorded as DecodeIssue entries and skipped by
declared size; they never abort the traversal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from loguru import logger

from .byte_source import ByteSource
from .codec import expect_tag, hfs_to_unix, is_plausible_length, read_string, read_u32_le
from .exceptions import TagMismatch, TruncatedRead
from .models import DatabaseFormat, DecodeIssue, DecodeResult, TrackRecord

TRACK_ITEM_MARKER = b"mhit"
DATASET_MARKER = b"mhsd"
DEFAULT_WINDOW_SIZE = 1024 * 1024

TRACK_LIST_DATASET = 1

# mhit field offsets, measured from the start of the item
ITEM_IDENTIFIER = 0x10
ITEM_LENGTH_MS = 0x28
ITEM_PLAY_COUNT = 0x50
ITEM_LAST_PLAYED = 0x58

# mhod types we keep
MHOD_TITLE = 1
MHOD_ALBUM = 3
MHOD_ARTIST = 4
_MHOD_FIELDS = {MHOD_TITLE: "title", MHOD_ALBUM: "album", MHOD_ARTIST: "artist"}

# encoding (4) + string length (4) + language/flags (8)
MHOD_STRING_PREAMBLE = 16


class Traversal(Enum):
    """How the decoder finds track items."""

    SCAN = "scan"
    STRUCTURED = "structured"


# (embedded identifier, discovery position) -> sequence id
SequencePolicy = Callable[[int, int], int]


def scan_order_id(identifier: int, position: int) -> int:
    return position


def embedded_id(identifier: int, position: int) -> int:
    return identifier


@dataclass(frozen=True)
class DecodeOptions:
    """Per-invocation decoder settings."""

    traversal: Traversal
    utc_offset: int
    # Compressed items carry their own play counts; uncompressed ones get
    # them from the Play Counts file instead.
    embedded_play_counts: bool
    sequence_policy: SequencePolicy
    window_size: int = DEFAULT_WINDOW_SIZE
    # Bytes shared by consecutive scan windows so a marker split across a
    # window boundary is still found. 0 reproduces the legacy gap.
    window_overlap: int = len(TRACK_ITEM_MARKER) - 1

    @classmethod
    def for_format(
        cls,
        database_format: DatabaseFormat,
        utc_offset: int,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> "DecodeOptions":
        if database_format is DatabaseFormat.COMPRESSED:
            return cls(
                traversal=Traversal.STRUCTURED,
                utc_offset=utc_offset,
                embedded_play_counts=True,
                sequence_policy=embedded_id,
                window_size=window_size,
            )
        return cls(
            traversal=Traversal.SCAN,
            utc_offset=utc_offset,
            embedded_play_counts=False,
            sequence_policy=scan_order_id,
            window_size=window_size,
        )


@dataclass(frozen=True)
class ItemHeader:
    """Common prefix of a tagged record: tag, header size, total size, and
    the fourth u32 (mhod count for mhit, type for mhsd/mhod)."""

    offset: int
    header_size: int
    total_size: int
    fourth: int


def _read_exact(source: ByteSource, offset: int, length: int) -> bytes:
    data = source.read(offset, length)
    if len(data) < length:
        raise TruncatedRead(length, len(data), offset)
    return data


def read_record_header(source: ByteSource, offset: int, tag: str) -> ItemHeader:
    """Read and validate the 16-byte prefix of a record.

    Raises:
        TruncatedRead: If fewer than 16 bytes remain at offset
        TagMismatch: If the marker is not tag
    """
    head = _read_exact(source, offset, 16)
    try:
        expect_tag(head, tag)
    except TagMismatch as e:
        raise TagMismatch(e.expected, e.found, offset) from None
    return ItemHeader(
        offset=offset,
        header_size=read_u32_le(head, 4),
        total_size=read_u32_le(head, 8),
        fourth=read_u32_le(head, 12),
    )


def _declared_total_size(source: ByteSource, offset: int) -> Optional[int]:
    head = source.read(offset, 12)
    if len(head) < 12:
        return None
    return read_u32_le(head, 8)


def decode_metadata_object(
    source: ByteSource, offset: int, fields: dict[str, str], issues: list[DecodeIssue]
) -> Optional[int]:
    """Decode one mhod at offset into fields.

    Returns the declared total size to advance by, or None when the header
    itself is unusable and the enclosing item must stop reading objects.
    """
    try:
        header = read_record_header(source, offset, "mhod")
    except (TagMismatch, TruncatedRead) as e:
        issues.append(DecodeIssue(offset, "mhod", str(e)))
        return None

    field_name = _MHOD_FIELDS.get(header.fourth)
    if field_name is None:
        return header.total_size

    string_start = offset + header.header_size
    try:
        preamble = _read_exact(source, string_start, MHOD_STRING_PREAMBLE)
        encoding_code = read_u32_le(preamble, 0)
        length = read_u32_le(preamble, 4)
        if not is_plausible_length(length):
            logger.debug(f"Ignoring mhod type {header.fourth} at {offset}: string length {length}")
            return header.total_size
        payload = _read_exact(source, string_start + MHOD_STRING_PREAMBLE, length)
    except TruncatedRead as e:
        issues.append(DecodeIssue(offset, "mhod", str(e)))
        return header.total_size

    text = read_string(payload, length, encoding_code)
    if text:
        fields[field_name] = text
    return header.total_size


def decode_track_item(
    source: ByteSource, offset: int, position: int, options: DecodeOptions, issues: list[DecodeIssue]
) -> tuple[Optional[TrackRecord], Optional[int]]:
    """Decode the mhit at offset and its metadata objects.

    Returns (track, total_size). track is None when the item could not be
    read; total_size is None when even the record prefix was unreadable.
    An item with the wrong tag still reports its declared total size so a
    structured walk can step over it.
    """
    try:
        header = read_record_header(source, offset, "mhit")
    except TagMismatch as e:
        issues.append(DecodeIssue(offset, "mhit", str(e)))
        return None, _declared_total_size(source, offset)
    except TruncatedRead as e:
        issues.append(DecodeIssue(offset, "mhit", str(e)))
        return None, None

    fields_end = ITEM_LAST_PLAYED + 4 if options.embedded_play_counts else ITEM_LENGTH_MS + 4
    try:
        fixed = _read_exact(source, offset, fields_end)
    except TruncatedRead as e:
        issues.append(DecodeIssue(offset, "mhit", str(e)))
        return None, header.total_size

    play_count = 0
    last_played = 0
    if options.embedded_play_counts:
        play_count = read_u32_le(fixed, ITEM_PLAY_COUNT)
        last_played = hfs_to_unix(read_u32_le(fixed, ITEM_LAST_PLAYED), options.utc_offset)

    fields: dict[str, str] = {}
    mhod_offset = offset + header.header_size
    item_end = offset + header.total_size
    for _ in range(header.fourth):
        if mhod_offset >= item_end:
            break
        size = decode_metadata_object(source, mhod_offset, fields, issues)
        if not size:
            break
        mhod_offset += size

    track = TrackRecord(
        sequence_id=options.sequence_policy(read_u32_le(fixed, ITEM_IDENTIFIER), position),
        title=fields.get("title", ""),
        artist=fields.get("artist", ""),
        album=fields.get("album", ""),
        length_ms=read_u32_le(fixed, ITEM_LENGTH_MS),
        play_count=play_count,
        last_played=last_played,
    )
    return track, header.total_size


def _iter_marker_offsets(source: ByteSource, window_size: int, overlap: int) -> Iterator[int]:
    """Yield absolute offsets of every track-item marker, in file order.

    One window buffer is reused for the whole scan. Consecutive windows
    share `overlap` bytes; with overlap >= 3 a straddling marker is found
    exactly once, since it is never wholly inside the earlier window.
    """
    if window_size <= overlap:
        raise ValueError(f"window_size ({window_size}) must exceed overlap ({overlap})")

    buffer = bytearray(window_size)
    read_into = getattr(source, "read_into", None)
    position = 0
    while True:
        if read_into is not None:
            filled = read_into(position, buffer)
        else:
            chunk = source.read(position, window_size)
            filled = len(chunk)
            buffer[:filled] = chunk

        index = buffer.find(TRACK_ITEM_MARKER, 0, filled)
        while index != -1:
            yield position + index
            index = buffer.find(TRACK_ITEM_MARKER, index + 1, filled)

        if filled < window_size:
            break
        position += filled - overlap


def scan_track_items(source: ByteSource, options: DecodeOptions, issues: list[DecodeIssue]) -> list[TrackRecord]:
    """Find and decode every mhit in source by marker search."""
    tracks = []
    position = 0
    for offset in _iter_marker_offsets(source, options.window_size, options.window_overlap):
        track, _ = decode_track_item(source, offset, position, options, issues)
        position += 1
        if track is not None:
            tracks.append(track)
    logger.debug(f"Marker scan found {position} track items")
    return tracks


def find_track_list(source: ByteSource, issues: list[DecodeIssue]) -> Optional[int]:
    """Locate the mhlt of the first track-list dataset.

    Datasets of other types are skipped by total size; bytes that are not a
    dataset marker are stepped over one at a time.
    """
    data = source.read(0, source.size)
    position = data.find(DATASET_MARKER)
    while position != -1 and position < len(data) - 8:
        try:
            header = read_record_header(source, position, "mhsd")
        except TruncatedRead as e:
            issues.append(DecodeIssue(position, "mhsd", str(e)))
            return None

        if header.fourth == TRACK_LIST_DATASET:
            return position + header.header_size

        logger.debug(f"Skipping dataset type {header.fourth} at {position}")
        step = header.total_size if header.total_size > 0 else 1
        position = data.find(DATASET_MARKER, position + step)
    return None


def walk_track_list(
    source: ByteSource, list_offset: int, options: DecodeOptions, issues: list[DecodeIssue]
) -> list[TrackRecord]:
    """Walk mhlt > mhit* by declared sizes.

    Iteration stops at the declared track count or the end of the source,
    whichever comes first.
    """
    try:
        head = _read_exact(source, list_offset, 12)
        expect_tag(head, "mhlt")
    except (TagMismatch, TruncatedRead) as e:
        issues.append(DecodeIssue(list_offset, "mhlt", str(e)))
        return []

    header_size = read_u32_le(head, 4)
    declared = read_u32_le(head, 8)
    logger.debug(f"Track list at {list_offset} declares {declared} tracks")

    tracks = []
    offset = list_offset + header_size
    for position in range(declared):
        if offset >= source.size:
            break
        track, total_size = decode_track_item(source, offset, position, options, issues)
        if track is not None:
            tracks.append(track)
        if not total_size:
            break
        offset += total_size
    return tracks


def decode_tracks(source: ByteSource, options: DecodeOptions) -> DecodeResult:
    """Decode all titled tracks from source using options.traversal."""
    issues: list[DecodeIssue] = []

    if options.traversal is Traversal.SCAN:
        database_format = DatabaseFormat.UNCOMPRESSED
        decoded = scan_track_items(source, options, issues)
    else:
        database_format = DatabaseFormat.COMPRESSED
        list_offset = find_track_list(source, issues)
        if list_offset is None:
            logger.warning("No track list dataset found in database")
            decoded = []
        else:
            decoded = walk_track_list(source, list_offset, options, issues)

    tracks = [track for track in decoded if track.title]
    if len(tracks) < len(decoded):
        logger.debug(f"Dropped {len(decoded) - len(tracks)} untitled track items")
    for issue in issues:
        logger.debug(f"Skipped {issue.record} at {issue.offset}: {issue.message}")
    if issues:
        logger.warning(f"Skipped {len(issues)} damaged records while decoding")

    return DecodeResult(format=database_format, tracks=tracks, issues=issues)
