"""Tests for EnvReader class."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from stv.config.env import EnvReader


class TestEnvReaderGetStr:
    """Tests for EnvReader.get_str method."""

    def test_returns_value_when_set(self) -> None:
        """Should return the value when environment variable is set."""
        reader = EnvReader(env={"MY_VAR": "hello"})
        assert reader.get_str("MY_VAR") == "hello"

    def test_returns_default_when_not_set(self) -> None:
        """Should return default when environment variable is not set."""
        reader = EnvReader(env={})
        assert reader.get_str("MY_VAR", "default") == "default"

    def test_returns_empty_string_when_set_to_empty(self) -> None:
        """Should return empty string when variable is set to empty."""
        reader = EnvReader(env={"MY_VAR": ""})
        assert reader.get_str("MY_VAR", "default") == ""

    def test_reads_os_environ_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should fall back to os.environ when no mapping is injected."""
        monkeypatch.setenv("STV_TEST_VALUE", "from-environ")
        assert EnvReader().get_str("STV_TEST_VALUE") == "from-environ"


class TestEnvReaderGetInt:
    """Tests for EnvReader.get_int method."""

    def test_parses_integer(self) -> None:
        reader = EnvReader(env={"MY_VAR": "4000000"})
        assert reader.get_int("MY_VAR") == 4_000_000

    def test_returns_default_when_not_set(self) -> None:
        assert EnvReader(env={}).get_int("MY_VAR", 100) == 100

    def test_invalid_value_logs_and_returns_default(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Should log a warning and fall back for non-integers."""
        reader = EnvReader(env={"MY_VAR": "fast"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_int("MY_VAR", 7) == 7
        assert "Invalid integer value for MY_VAR: fast" in caplog.text


class TestEnvReaderGetFloat:
    """Tests for EnvReader.get_float method."""

    def test_parses_float(self) -> None:
        assert EnvReader(env={"MY_VAR": "0.5"}).get_float("MY_VAR") == 0.5

    def test_invalid_value_logs_and_returns_default(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        reader = EnvReader(env={"MY_VAR": "lots"})
        with caplog.at_level(logging.WARNING):
            assert reader.get_float("MY_VAR") is None
        assert "Invalid float value for MY_VAR: lots" in caplog.text


class TestEnvReaderGetBool:
    """Tests for EnvReader.get_bool method."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "on"])
    def test_truthy_values(self, value: str) -> None:
        assert EnvReader(env={"MY_VAR": value}).get_bool("MY_VAR") is True

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", ""])
    def test_other_values_are_false(self, value: str) -> None:
        assert EnvReader(env={"MY_VAR": value}).get_bool("MY_VAR") is False

    def test_returns_default_when_not_set(self) -> None:
        assert EnvReader(env={}).get_bool("MY_VAR") is None


class TestEnvReaderGetPath:
    """Tests for EnvReader.get_path method."""

    def test_existing_path(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"MY_VAR": str(tmp_path)})
        assert reader.get_path("MY_VAR") == tmp_path

    def test_missing_path_logs_and_returns_default(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Should reject a non-existent path when it must exist."""
        missing = tmp_path / "nope"
        reader = EnvReader(env={"MY_VAR": str(missing)})
        with caplog.at_level(logging.WARNING):
            assert reader.get_path("MY_VAR") is None
        assert "non-existent path" in caplog.text

    def test_missing_path_allowed(self, tmp_path: Path) -> None:
        missing = tmp_path / "logs" / "stv.log"
        reader = EnvReader(env={"MY_VAR": str(missing)})
        assert reader.get_path("MY_VAR", must_exist=False) == missing

    def test_expands_tilde(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        reader = EnvReader(env={"MY_VAR": "~/stv.log"})
        assert reader.get_path("MY_VAR", must_exist=False) == tmp_path / "stv.log"
