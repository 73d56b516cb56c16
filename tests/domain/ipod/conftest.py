"""Synthetic iPod databases for decoder tests."""

import struct
import zlib
from types import SimpleNamespace

import pytest

from legacy_scrobbler.domain.ipod.codec import HFS_EPOCH_DELTA

MHIT_HEADER_SIZE = 0x9C
MHOD_HEADER_SIZE = 24


def hfs(unix_seconds: int) -> int:
    """HFS encoding of a Unix time (with zero timezone correction)."""
    return unix_seconds + HFS_EPOCH_DELTA if unix_seconds else 0


def mhod(kind: int, text: str, encoding: int = 1, declared_length: int | None = None) -> bytes:
    payload = text.encode("utf-16-le" if encoding == 1 else "utf-8")
    length = len(payload) if declared_length is None else declared_length
    body = struct.pack("<II8x", encoding, length) + payload
    total = MHOD_HEADER_SIZE + len(body)
    return struct.pack("<4sIII8x", b"mhod", MHOD_HEADER_SIZE, total, kind) + body


def mhit(
    identifier: int,
    title: str = "",
    artist: str = "",
    album: str = "",
    length_ms: int = 200_000,
    play_count: int = 0,
    last_played: int = 0,
    encoding: int = 1,
    extra_mhods: tuple = (),
) -> bytes:
    mhods = []
    if title:
        mhods.append(mhod(1, title, encoding))
    if album:
        mhods.append(mhod(3, album, encoding))
    if artist:
        mhods.append(mhod(4, artist, encoding))
    mhods.extend(extra_mhods)
    body = b"".join(mhods)

    header = bytearray(MHIT_HEADER_SIZE)
    struct.pack_into(
        "<4sIII", header, 0, b"mhit", MHIT_HEADER_SIZE, MHIT_HEADER_SIZE + len(body), len(mhods)
    )
    struct.pack_into("<I", header, 0x10, identifier)
    struct.pack_into("<I", header, 0x28, length_ms)
    struct.pack_into("<I", header, 0x50, play_count)
    struct.pack_into("<I", header, 0x58, hfs(last_played))
    return bytes(header) + body


def mhlt(items: list[bytes], declared: int | None = None) -> bytes:
    count = len(items) if declared is None else declared
    return struct.pack("<4sII80x", b"mhlt", 92, count) + b"".join(items)


def mhsd(kind: int, body: bytes) -> bytes:
    return struct.pack("<4sIII80x", b"mhsd", 96, 96 + len(body), kind) + body


def mhbd_header(total_size: int) -> bytes:
    return struct.pack("<4sII92x", b"mhbd", 104, total_size)


def uncompressed_db(items: list[bytes], noise: bytes = b"") -> bytes:
    datasets = mhsd(3, noise) + mhsd(1, mhlt(items))
    return mhbd_header(104 + len(datasets)) + datasets


def compressed_db(items: list[bytes], declared: int | None = None) -> bytes:
    datasets = mhsd(2, b"\x00" * 64) + mhsd(1, mhlt(items, declared))
    return mhbd_header(104 + len(datasets)) + zlib.compress(datasets)


def play_counts(entries: list[tuple[int, int]], stride: int = 28) -> bytes:
    """Play Counts image; entries are (play_count, last_played_unix).

    A trailing empty entry is appended, as the device writes it.
    """
    rows = []
    for count, last_played in entries + [(0, 0)]:
        row = bytearray(stride)
        struct.pack_into("<I", row, 0, count)
        if count:
            struct.pack_into("<I", row, 4, hfs(last_played))
        rows.append(bytes(row))
    header = struct.pack("<4sIII80x", b"mhdp", 96, stride, len(rows))
    return header + b"".join(rows)


@pytest.fixture
def build() -> SimpleNamespace:
    """Builders for synthetic database images."""
    return SimpleNamespace(
        hfs=hfs,
        mhod=mhod,
        mhit=mhit,
        mhlt=mhlt,
        mhsd=mhsd,
        uncompressed_db=uncompressed_db,
        compressed_db=compressed_db,
        play_counts=play_counts,
    )


@pytest.fixture
def sample_items() -> list[bytes]:
    """Three tracks; the second one has never been played."""
    return [
        mhit(501, "Hyperballad", "Björk", "Post", 321_000, play_count=2, last_played=1_700_000_000),
        mhit(502, "Army of Me", "Björk", "Post", 234_000),
        mhit(503, "Jóga", "Björk", "Homogenic", 305_000, play_count=1, last_played=1_700_100_000),
    ]


@pytest.fixture
def ipod_dir(tmp_path, sample_items):
    """An iTunes directory holding iTunesDB and Play Counts."""
    (tmp_path / "iTunesDB").write_bytes(uncompressed_db(sample_items))
    (tmp_path / "Play Counts").write_bytes(
        play_counts([(3, 1_700_200_000), (0, 0), (1, 1_700_300_000)])
    )
    return tmp_path
