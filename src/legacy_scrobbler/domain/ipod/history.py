"""
Listening history assembly.

Ties the pieces together: pick the database file, decode it with the right
traversal, merge Play Counts for uncompressed databases, then expand the
played tracks into a play log ordered newest first.
"""

import os
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from .byte_source import FileByteSource
from .codec import local_utc_offset
from .container import unwrap_compressed
from .exceptions import IpodDatabaseError
from .expander import expand_all
from .models import DatabaseFormat, DecodeResult, ScrobbleEvent, TrackRecord
from .play_counts import PLAY_COUNTS_FILENAME, apply_play_counts
from .records import DEFAULT_WINDOW_SIZE, DecodeOptions, decode_tracks


def _device_file(path: str | os.PathLike, name: str) -> Path:
    """Join name onto a directory, or append it to a plain path prefix."""
    prefix = os.fspath(path)
    if os.path.isdir(prefix):
        return Path(prefix) / name
    return Path(prefix + name)


def detect_database(path: str | os.PathLike) -> tuple[Path, DatabaseFormat]:
    """Choose iTunesCDB when it exists, otherwise iTunesDB.

    Detection is by file name only; contents are not inspected.
    """
    compressed = _device_file(path, DatabaseFormat.COMPRESSED.value)
    if compressed.exists():
        return compressed, DatabaseFormat.COMPRESSED
    return _device_file(path, DatabaseFormat.UNCOMPRESSED.value), DatabaseFormat.UNCOMPRESSED


def read_tracks(
    path: str | os.PathLike,
    utc_offset: Optional[int] = None,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> DecodeResult:
    """Decode every track on the device at path, with play data merged.

    Args:
        path: iTunes directory of the device (or a prefix the file names
            are appended to)
        utc_offset: Legacy timezone correction in seconds (UTC minus local);
            defaults to this machine's current offset
        window_size: Read window for scanning uncompressed databases

    Raises:
        InvalidContainer: If an iTunesCDB file has no mhbd header
        DecompressionError: If an iTunesCDB payload cannot be inflated
        FilesystemError: If a database file cannot be opened or read
    """
    if utc_offset is None:
        utc_offset = local_utc_offset()

    database_path, database_format = detect_database(path)
    options = DecodeOptions.for_format(database_format, utc_offset, window_size)
    logger.info(f"Reading {database_format.name.lower()} database {database_path}")

    try:
        with FileByteSource(database_path) as source:
            if database_format is DatabaseFormat.COMPRESSED:
                result = decode_tracks(unwrap_compressed(source), options)
            else:
                result = decode_tracks(source, options)
    except IpodDatabaseError as e:
        logger.error(f"Failed to read {database_path}: {e}")
        raise

    if database_format is DatabaseFormat.UNCOMPRESSED:
        play_counts_path = _device_file(path, PLAY_COUNTS_FILENAME)
        result.tracks = apply_play_counts(play_counts_path, result.tracks, utc_offset)

    logger.info(f"Decoded {len(result.tracks)} tracks from {database_path}")
    return result


def played_tracks(tracks: Iterable[TrackRecord]) -> list[TrackRecord]:
    """Tracks with at least one play, most recently played first."""
    played = [track for track in tracks if track.play_count > 0]
    played.sort(key=lambda track: track.last_played, reverse=True)
    return played


def assemble_history(tracks: Iterable[TrackRecord]) -> list[ScrobbleEvent]:
    """Expand played tracks into events sorted newest first."""
    events = expand_all(track for track in tracks if track.play_count > 0)
    events.sort(key=lambda event: event.played_at, reverse=True)
    return events


def get_played_tracks(path: str | os.PathLike, **kwargs) -> list[TrackRecord]:
    """Read the device at path and return its played tracks."""
    tracks = played_tracks(read_tracks(path, **kwargs).tracks)
    logger.info(f"Found {len(tracks)} tracks with plays")
    return tracks


def get_recent_plays(path: str | os.PathLike, **kwargs) -> list[ScrobbleEvent]:
    """Read the device at path and return its reconstructed play log."""
    events = assemble_history(read_tracks(path, **kwargs).tracks)
    logger.info(f"Reconstructed {len(events)} plays")
    return events
