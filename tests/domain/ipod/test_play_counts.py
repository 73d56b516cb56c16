"""Tests for Play Counts parsing and correlation."""

import struct

import pytest

from legacy_scrobbler.domain.ipod.exceptions import FilesystemError
from legacy_scrobbler.domain.ipod.models import PlayCountEntry, TrackRecord
from legacy_scrobbler.domain.ipod.play_counts import (
    apply_play_counts,
    correlate_play_counts,
    read_play_counts,
)


@pytest.fixture
def tracks() -> list[TrackRecord]:
    return [TrackRecord(sequence_id=i, title=f"Track {i}") for i in range(3)]


class TestReadPlayCounts:
    """Tests for read_play_counts."""

    def test_nonzero_entries_only(self, build, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(build.play_counts([(2, 1_000_000), (0, 0), (5, 2_000_000)]))
        assert read_play_counts(path, utc_offset=0) == [
            PlayCountEntry(index=0, play_count=2, last_played=1_000_000),
            PlayCountEntry(index=2, play_count=5, last_played=2_000_000),
        ]

    def test_offset_applied(self, build, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(build.play_counts([(1, 1_000_000)]))
        assert read_play_counts(path, utc_offset=-3600)[0].last_played == 996_400

    def test_custom_stride(self, build, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(build.play_counts([(1, 10), (0, 0), (3, 30)], stride=16))
        entries = read_play_counts(path, utc_offset=0)
        assert [(e.index, e.play_count) for e in entries] == [(0, 1), (2, 3)]

    def test_last_declared_entry_not_read(self, build, tmp_path) -> None:
        data = bytearray(build.play_counts([(1, 10)]))
        # Give the trailing entry a play count; it still is not read
        data[96 + 28] = 9
        path = tmp_path / "Play Counts"
        path.write_bytes(bytes(data))
        assert [e.index for e in read_play_counts(path, utc_offset=0)] == [0]

    def test_truncated_file(self, build, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(build.play_counts([(1, 10), (2, 20), (3, 30)])[: 96 + 28 + 2])
        assert [e.index for e in read_play_counts(path, utc_offset=0)] == [0]

    def test_short_stride_reads_timestamp_past_entry(self, tmp_path) -> None:
        # 4-byte entries: each timestamp is read from the following entry
        header = struct.pack("<4sIII80x", b"mhdp", 96, 4, 3)
        path = tmp_path / "Play Counts"
        path.write_bytes(header + struct.pack("<III", 2, 5, 0))
        entries = read_play_counts(path, utc_offset=0)
        assert [(e.index, e.play_count) for e in entries] == [(0, 2), (1, 5)]
        assert entries[1].last_played == 0

    def test_short_header(self, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(b"mhdp\x60\x00")
        assert read_play_counts(path, utc_offset=0) == []

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(FilesystemError):
            read_play_counts(tmp_path / "Play Counts", utc_offset=0)


class TestCorrelatePlayCounts:
    """Tests for correlate_play_counts."""

    def test_matches_by_sequence_id(self, tracks) -> None:
        entries = [
            PlayCountEntry(index=0, play_count=2, last_played=100),
            PlayCountEntry(index=2, play_count=1, last_played=300),
        ]
        result = correlate_play_counts(tracks, entries)
        assert [(t.play_count, t.last_played) for t in result] == [(2, 100), (0, 0), (1, 300)]
        assert result[1] is tracks[1]

    def test_not_positional(self) -> None:
        shuffled = [
            TrackRecord(sequence_id=2, title="C"),
            TrackRecord(sequence_id=0, title="A"),
        ]
        entries = [PlayCountEntry(index=0, play_count=7, last_played=70)]
        result = correlate_play_counts(shuffled, entries)
        assert result[0].play_count == 0
        assert result[1].play_count == 7

    def test_unmatched_entry_dropped(self, tracks) -> None:
        entries = [PlayCountEntry(index=42, play_count=3, last_played=1)]
        result = correlate_play_counts(tracks, entries)
        assert result == tracks
        assert len(result) == 3

    def test_input_not_mutated(self, tracks) -> None:
        correlate_play_counts(tracks, [PlayCountEntry(index=0, play_count=1, last_played=5)])
        assert tracks[0].play_count == 0


class TestApplyPlayCounts:
    """Tests for apply_play_counts."""

    def test_missing_file_means_no_plays(self, tracks, tmp_path) -> None:
        assert apply_play_counts(tmp_path / "Play Counts", tracks, utc_offset=0) == tracks

    def test_applies_file(self, build, tracks, tmp_path) -> None:
        path = tmp_path / "Play Counts"
        path.write_bytes(build.play_counts([(0, 0), (4, 400)]))
        result = apply_play_counts(path, tracks, utc_offset=0)
        assert [t.play_count for t in result] == [0, 4, 0]
