"""Tests for iTunesCDB unwrapping."""

import struct
import zlib

import pytest

from legacy_scrobbler.domain.ipod.byte_source import MemoryByteSource
from legacy_scrobbler.domain.ipod.container import unwrap_compressed
from legacy_scrobbler.domain.ipod.exceptions import DecompressionError, InvalidContainer
from legacy_scrobbler.domain.ipod.models import DatabaseFormat
from legacy_scrobbler.domain.ipod.records import DecodeOptions, decode_tracks


class TestUnwrapCompressed:
    """Tests for unwrap_compressed."""

    def test_inflates_payload(self) -> None:
        inner = b"mhsd" + b"\x01" * 500
        data = struct.pack("<4sI", b"mhbd", 16) + b"\x00" * 8 + zlib.compress(inner)
        assert unwrap_compressed(MemoryByteSource(data)).read(0, 10_000) == inner

    def test_decodes_compressed_database(self, build, sample_items) -> None:
        source = unwrap_compressed(MemoryByteSource(build.compressed_db(sample_items)))
        options = DecodeOptions.for_format(DatabaseFormat.COMPRESSED, utc_offset=0)
        result = decode_tracks(source, options)
        assert [t.title for t in result.tracks] == ["Hyperballad", "Army of Me", "Jóga"]
        assert [t.play_count for t in result.tracks] == [2, 0, 1]

    def test_wrong_leading_tag(self, build, sample_items) -> None:
        data = b"mhsd" + build.compressed_db(sample_items)[4:]
        with pytest.raises(InvalidContainer):
            unwrap_compressed(MemoryByteSource(data))

    def test_empty_file(self) -> None:
        with pytest.raises(InvalidContainer):
            unwrap_compressed(MemoryByteSource(b""))

    def test_garbage_payload(self) -> None:
        data = struct.pack("<4sI", b"mhbd", 8) + b"\x78\x9c" + b"\xff" * 64
        with pytest.raises(DecompressionError):
            unwrap_compressed(MemoryByteSource(data))

    def test_truncated_stream(self) -> None:
        stream = zlib.compress(bytes(range(256)) * 64)
        data = struct.pack("<4sI", b"mhbd", 8) + stream[: len(stream) // 2]
        with pytest.raises(DecompressionError):
            unwrap_compressed(MemoryByteSource(data))

    def test_missing_payload(self) -> None:
        with pytest.raises(DecompressionError):
            unwrap_compressed(MemoryByteSource(struct.pack("<4sI", b"mhbd", 104)))
