"""Shared test fixtures for straight-to-video."""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from pathlib import Path

import pytest

from fakes import MP4_HEAD, FakePlatform
from stv.config.models import StvConfig
from stv.domain.models import MediaFile


@pytest.fixture
def config() -> StvConfig:
    return StvConfig()


@pytest.fixture
def fake_platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def video_file() -> MediaFile:
    """An in-memory file that looks like an MP4 and declares a video type."""
    return MediaFile(name="clip.mov", mime_type="video/quicktime", data=MP4_HEAD)


@pytest.fixture
def video_path(tmp_path: Path) -> Path:
    """A small on-disk file with an MP4 signature."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(MP4_HEAD)
    return path


@pytest.fixture
def parse_boxes() -> Callable[[bytes], list[tuple[bytes, int, int]]]:
    """Return a parser listing top-level boxes as (type, offset, size)."""

    def _parse(data: bytes) -> list[tuple[bytes, int, int]]:
        found = []
        pos = 0
        while pos + 8 <= len(data):
            size, box_type = struct.unpack(">I4s", data[pos : pos + 8])
            if size == 1:
                size = struct.unpack(">Q", data[pos + 8 : pos + 16])[0]
            elif size == 0:
                size = len(data) - pos
            found.append((box_type, pos, size))
            pos += size
        return found

    return _parse


@pytest.fixture
def find_box() -> Callable[[bytes, bytes], bytes | None]:
    """Return a helper slicing out the first box of a type found in ``data``.

    It scans for the four-character code, so only use it on known layouts.
    """

    def _find(data: bytes, box_type: bytes) -> bytes | None:
        index = data.find(box_type)
        if index < 4:
            return None
        size = struct.unpack(">I", data[index - 4 : index])[0]
        return data[index - 4 : index - 4 + size]

    return _find


@pytest.fixture
def restore_root_logger():
    """Yield the root logger and put its handlers and level back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
