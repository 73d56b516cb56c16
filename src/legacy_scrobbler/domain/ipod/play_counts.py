"""
Play Counts file parsing and correlation.

Layout: 8 reserved bytes, u32 entry stride, u32 entry count, 80 reserved
bytes, then fixed-stride entries. Each entry starts with a u32 play count
followed, when that count is nonzero, by a u32 HFS last-played time. The
rest of the stride is skipped.

Entry i belongs to the track whose sequence_id is i. This only holds for
the scan-order ids of an uncompressed iTunesDB.
"""

import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

from loguru import logger

from .byte_source import FileByteSource
from .codec import hfs_to_unix, local_utc_offset, read_u32_le
from .exceptions import TruncatedRead
from .models import PlayCountEntry, TrackRecord

PLAY_COUNTS_FILENAME = "Play Counts"

STRIDE_OFFSET = 8
COUNT_OFFSET = 12
ENTRIES_OFFSET = 96  # 8 + 4 + 4 + 80


def read_play_counts(
    path: str | os.PathLike, utc_offset: Optional[int] = None
) -> list[PlayCountEntry]:
    """Read nonzero entries from a Play Counts file.

    The last declared entry is never read; the device writes one entry
    fewer than the count it declares.

    Raises:
        FilesystemError: If the file cannot be opened or read
    """
    if utc_offset is None:
        utc_offset = local_utc_offset()

    entries = []
    with FileByteSource(path) as source:
        head = source.read(0, ENTRIES_OFFSET)
        try:
            stride = read_u32_le(head, STRIDE_OFFSET)
            count = read_u32_le(head, COUNT_OFFSET)
        except TruncatedRead as e:
            logger.warning(f"Play Counts header truncated in {path}: {e}")
            return entries

        if stride < 4:
            logger.warning(f"Play Counts stride {stride} too small in {path}")
            return entries

        offset = ENTRIES_OFFSET
        for index in range(count - 1):
            # The timestamp sits at +4 even when the stride is shorter
            entry = source.read(offset, 8)
            try:
                play_count = read_u32_le(entry, 0)
                last_played = read_u32_le(entry, 4) if play_count else 0
            except TruncatedRead as e:
                logger.warning(f"Play Counts entry {index} truncated: {e}")
                break

            if play_count:
                entries.append(
                    PlayCountEntry(
                        index=index,
                        play_count=play_count,
                        last_played=hfs_to_unix(last_played, utc_offset),
                    )
                )
            offset += stride

    logger.debug(f"Read {len(entries)} nonzero play count entries from {path}")
    return entries


def correlate_play_counts(
    tracks: list[TrackRecord], entries: list[PlayCountEntry]
) -> list[TrackRecord]:
    """Return tracks with play data taken from matching entries.

    Matching is by sequence_id == entry.index. Tracks without an entry are
    returned unchanged; entries without a track are dropped.
    """
    by_index = {entry.index: entry for entry in entries}
    matched = 0
    correlated = []
    for track in tracks:
        entry = by_index.get(track.sequence_id)
        if entry is None:
            correlated.append(track)
            continue
        correlated.append(
            replace(track, play_count=entry.play_count, last_played=entry.last_played)
        )
        matched += 1

    dropped = len(by_index) - matched
    logger.info(f"Matched {matched} play count entries to tracks ({dropped} unmatched)")
    return correlated


def apply_play_counts(
    path: str | os.PathLike, tracks: list[TrackRecord], utc_offset: Optional[int] = None
) -> list[TrackRecord]:
    """Correlate a Play Counts file with tracks.

    A missing file means the device has recorded no plays since the last
    sync, so tracks are returned as they are.
    """
    if not Path(path).exists():
        logger.info(f"No Play Counts file at {path}; no new plays recorded")
        return list(tracks)
    return correlate_play_counts(tracks, read_play_counts(path, utc_offset))
