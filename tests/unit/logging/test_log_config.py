"""Tests for JSONFormatter and configure_logging."""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler

from stv.config.models import LoggingConfig
from stv.logging import JSONFormatter, configure_logging, media_context
from stv.logging.context import MediaContextFilter


def make_record(name="stv.pipeline", msg="Encoded %d frames", args=(12,)):
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))
        assert entry["level"] == "INFO"
        assert entry["message"] == "Encoded 12 frames"
        assert entry["logger"] == "stv.pipeline"
        assert "timestamp" in entry
        assert "context" not in entry

    def test_root_logger_name_omitted(self):
        entry = json.loads(JSONFormatter().format(make_record(name="root")))
        assert "logger" not in entry

    def test_extra_fields_in_context(self):
        record = make_record()
        record.frames = 12
        entry = json.loads(JSONFormatter().format(record))
        assert entry["context"] == {"frames": 12}

    def test_media_context_fields(self):
        record = make_record()
        with media_context("clip.mov", stage="video"):
            MediaContextFilter().filter(record)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["context"] == {"media_name": "clip.mov", "stage": "video"}
        assert "media_tag" not in entry["context"]

    def test_exception_included(self):
        try:
            raise RuntimeError("encoder died")
        except RuntimeError:
            record = logging.LogRecord(
                "stv", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: encoder died" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_stderr_only_by_default(self, restore_root_logger):
        configure_logging(LoggingConfig(level="debug"))
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_file_handler(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "stv.log"
        configure_logging(LoggingConfig(file=log_file, format="json"))
        root = restore_root_logger
        assert [type(h) for h in root.handlers] == [RotatingFileHandler]

        with media_context("clip.mov", stage="mux"):
            logging.getLogger("stv.test").warning("wrote %s", "clip-optimized.mp4")
        root.handlers[0].flush()

        entry = json.loads(log_file.read_text().splitlines()[-1])
        assert entry["message"] == "wrote clip-optimized.mp4"
        assert entry["context"]["media_name"] == "clip.mov"

    def test_file_and_stderr(self, restore_root_logger, tmp_path):
        configure_logging(
            LoggingConfig(file=tmp_path / "stv.log", include_stderr=True)
        )
        assert len(restore_root_logger.handlers) == 2

    def test_text_format_includes_media_tag(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "stv.log"
        configure_logging(LoggingConfig(file=log_file))
        with media_context("clip.mov", stage="probe"):
            logging.getLogger("stv.test").info("probing")
        restore_root_logger.handlers[0].flush()
        assert "[clip.mov:probe] stv.test - INFO - probing" in log_file.read_text()
