"""Typed access to STV_* environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class EnvReader:
    """Reads variables from ``env`` (os.environ unless a mapping is injected).

    Every getter returns ``default`` for an unset variable. Values that fail
    to parse are logged at WARNING and also yield ``default``, so a typo in
    the environment never aborts startup:

        reader = EnvReader(env={"STV_VIDEO_BITRATE": "4000000"})
        reader.get_int("STV_VIDEO_BITRATE")  # 4000000
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env

    def _parsed(
        self, var: str, parse: Callable[[str], T], kind: str, default: T | None
    ) -> T | None:
        raw = self._env.get(var)
        if raw is None:
            return default
        try:
            return parse(raw)
        except ValueError:
            logger.warning("Invalid %s value for %s: %s", kind, var, raw)
            return default

    def get_str(self, var: str, default: str | None = None) -> str | None:
        return self._env.get(var, default)

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._parsed(var, int, "integer", default)

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._parsed(var, float, "float", default)

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        # anything outside _TRUTHY, the empty string included, reads as False
        return self._parsed(var, lambda raw: raw.lower() in _TRUTHY, "bool", default)

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Read a path, expanding ``~``.

        With ``must_exist`` a missing path is logged and ``default`` returned.
        """
        path = self._parsed(var, lambda raw: Path(raw).expanduser(), "path", None)
        if path is None:
            return default
        if must_exist and not path.exists():
            logger.warning("%s points to non-existent path: %s", var, path)
            return default
        return path
