"""Tests for history assembly over device directories."""

import pytest

from legacy_scrobbler.domain.ipod.exceptions import FilesystemError, InvalidContainer
from legacy_scrobbler.domain.ipod.history import (
    assemble_history,
    detect_database,
    get_played_tracks,
    get_recent_plays,
    read_tracks,
)
from legacy_scrobbler.domain.ipod.models import DatabaseFormat, TrackRecord


class TestDetectDatabase:
    """Tests for detect_database."""

    def test_prefers_compressed(self, tmp_path) -> None:
        (tmp_path / "iTunesDB").write_bytes(b"")
        (tmp_path / "iTunesCDB").write_bytes(b"")
        assert detect_database(tmp_path) == (tmp_path / "iTunesCDB", DatabaseFormat.COMPRESSED)

    def test_falls_back_to_uncompressed(self, tmp_path) -> None:
        assert detect_database(tmp_path) == (tmp_path / "iTunesDB", DatabaseFormat.UNCOMPRESSED)

    def test_string_prefix(self, tmp_path) -> None:
        (tmp_path / "backup-iTunesCDB").write_bytes(b"")
        path, database_format = detect_database(f"{tmp_path}/backup-")
        assert path.name == "backup-iTunesCDB"
        assert database_format is DatabaseFormat.COMPRESSED


class TestReadTracks:
    """Tests for read_tracks."""

    def test_uncompressed_uses_play_counts(self, ipod_dir) -> None:
        result = read_tracks(ipod_dir, utc_offset=0)
        assert result.format is DatabaseFormat.UNCOMPRESSED
        assert [(t.title, t.play_count, t.last_played) for t in result.tracks] == [
            ("Hyperballad", 3, 1_700_200_000),
            ("Army of Me", 0, 0),
            ("Jóga", 1, 1_700_300_000),
        ]

    def test_uncompressed_without_play_counts(self, ipod_dir) -> None:
        (ipod_dir / "Play Counts").unlink()
        result = read_tracks(ipod_dir, utc_offset=0)
        assert all(t.play_count == 0 for t in result.tracks)

    def test_compressed_uses_embedded_counts(self, build, sample_items, tmp_path) -> None:
        (tmp_path / "iTunesCDB").write_bytes(build.compressed_db(sample_items))
        (tmp_path / "Play Counts").write_bytes(build.play_counts([(9, 9)]))
        result = read_tracks(tmp_path, utc_offset=0)
        assert result.format is DatabaseFormat.COMPRESSED
        assert [t.play_count for t in result.tracks] == [2, 0, 1]

    def test_compressed_bad_header(self, tmp_path) -> None:
        (tmp_path / "iTunesCDB").write_bytes(b"junk" * 10)
        with pytest.raises(InvalidContainer):
            read_tracks(tmp_path, utc_offset=0)

    def test_missing_database(self, tmp_path) -> None:
        with pytest.raises(FilesystemError):
            read_tracks(tmp_path, utc_offset=0)

    def test_repeatable(self, ipod_dir) -> None:
        assert read_tracks(ipod_dir, utc_offset=0) == read_tracks(ipod_dir, utc_offset=0)

    def test_offset_threads_through(self, ipod_dir) -> None:
        shifted = read_tracks(ipod_dir, utc_offset=3600)
        assert shifted.tracks[0].last_played == 1_700_200_000 + 3600


class TestAssembleHistory:
    """Tests for assemble_history and the device-level helpers."""

    def test_sorted_newest_first(self) -> None:
        tracks = [
            TrackRecord(sequence_id=0, title="A", length_ms=100_000, play_count=3, last_played=1000),
            TrackRecord(sequence_id=1, title="B", length_ms=100_000, play_count=1, last_played=950),
            TrackRecord(sequence_id=2, title="C", play_count=0, last_played=5000),
        ]
        events = assemble_history(tracks)
        assert [(e.track.title, e.played_at) for e in events] == [
            ("A", 1000),
            ("B", 950),
            ("A", 900),
            ("A", 800),
        ]

    def test_recent_plays(self, ipod_dir) -> None:
        events = get_recent_plays(ipod_dir, utc_offset=0)
        assert [e.track.title for e in events] == ["Jóga", "Hyperballad", "Hyperballad", "Hyperballad"]
        assert [e.played_at for e in events] == [
            1_700_300_000,
            1_700_200_000,
            1_700_200_000 - 321,
            1_700_200_000 - 642,
        ]
        played_at = [e.played_at for e in events]
        assert played_at == sorted(played_at, reverse=True)

    def test_played_tracks(self, ipod_dir) -> None:
        tracks = get_played_tracks(ipod_dir, utc_offset=0)
        assert [t.title for t in tracks] == ["Jóga", "Hyperballad"]
