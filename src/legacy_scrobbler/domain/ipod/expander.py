"""
Play-event expansion.

The device only keeps an aggregate play count and one last-played time per
track. Each play is rebuilt as a separate event, walking back from the last
play in steps of one track length.
"""

from typing import Iterable

from .models import DEFAULT_TRACK_LENGTH_MS, ScrobbleEvent, TrackRecord


def expand_plays(track: TrackRecord) -> list[ScrobbleEvent]:
    """Return track.play_count events, most recent first."""
    spacing = (track.length_ms or DEFAULT_TRACK_LENGTH_MS) // 1000
    return [
        ScrobbleEvent(track=track, played_at=track.last_played - i * spacing)
        for i in range(track.play_count)
    ]


def expand_all(tracks: Iterable[TrackRecord]) -> list[ScrobbleEvent]:
    events: list[ScrobbleEvent] = []
    for track in tracks:
        events.extend(expand_plays(track))
    return events
