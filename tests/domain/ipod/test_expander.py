"""Tests for play-event expansion."""

from legacy_scrobbler.domain.ipod.expander import expand_all, expand_plays
from legacy_scrobbler.domain.ipod.models import TrackRecord


class TestExpandPlays:
    """Tests for expand_plays."""

    def test_spacing_by_track_length(self) -> None:
        track = TrackRecord(sequence_id=0, title="T", length_ms=180_000, play_count=3, last_played=1000)
        assert [e.played_at for e in expand_plays(track)] == [1000, 820, 640]

    def test_length_floored_to_seconds(self) -> None:
        track = TrackRecord(sequence_id=0, title="T", length_ms=61_999, play_count=2, last_played=500)
        assert [e.played_at for e in expand_plays(track)] == [500, 439]

    def test_zero_length_uses_default(self) -> None:
        track = TrackRecord(sequence_id=0, title="T", length_ms=0, play_count=2, last_played=1000)
        assert [e.played_at for e in expand_plays(track)] == [1000, 820]

    def test_no_plays(self) -> None:
        assert expand_plays(TrackRecord(sequence_id=0, title="T")) == []

    def test_events_reference_track(self) -> None:
        track = TrackRecord(sequence_id=0, title="T", play_count=2, last_played=1000)
        assert all(e.track is track for e in expand_plays(track))


class TestExpandAll:
    """Tests for expand_all."""

    def test_concatenates(self) -> None:
        tracks = [
            TrackRecord(sequence_id=0, title="A", play_count=2, last_played=1000),
            TrackRecord(sequence_id=1, title="B", play_count=1, last_played=50),
        ]
        assert [(e.track.title, e.played_at) for e in expand_all(tracks)] == [
            ("A", 1000),
            ("A", 820),
            ("B", 50),
        ]
