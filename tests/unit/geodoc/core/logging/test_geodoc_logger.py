import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
import structlog

from geodoc.core.logging.logger import _enforce_key_order_processor, default_formatter, get_logger, setup_logger


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestSetupLogger:
    """Unit tests for logger setup in geodoc.core.logging.logger."""

    def test_setup_logger_creates_log_file_and_handlers(self, tmp_path):
        logger = setup_logger(
            name="test_logger",
            log_dir=tmp_path,
            logger_level=logging.INFO,
            stream_level=logging.WARNING,
            file_level=logging.INFO,
            file_mode="w",
            propagate=False,
            max_bytes=1024,
            backup_count=1,
            use_structlog=False,
        )

        assert logger.name == "test_logger"
        assert logger.level == logging.INFO
        assert logger.propagate is False
        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        assert any(type(h) is logging.StreamHandler for h in logger.handlers)

        log_file = tmp_path / "modules" / "test_logger.log"
        assert log_file.exists()
        logger.info("Test log message")
        assert "Test log message" in log_file.read_text()

    def test_root_logger_writes_to_top_level_file(self, tmp_path):
        setup_logger("geodoc", log_dir=tmp_path, add_stream_handler=False, use_structlog=False)

        assert (tmp_path / "geodoc.log").exists()

    def test_handlers_can_be_disabled(self, tmp_path):
        logger = setup_logger(
            "test_no_handlers", log_dir=tmp_path, add_stream_handler=False, add_file_handler=False, use_structlog=False
        )

        assert logger.handlers == []

    def test_setup_replaces_existing_handlers(self, tmp_path):
        setup_logger("test_repeat", log_dir=tmp_path, use_structlog=False)
        logger = setup_logger("test_repeat", log_dir=tmp_path, use_structlog=False)

        assert len(logger.handlers) == 2

    def test_default_formatter(self):
        record = logging.LogRecord("geodoc.test", logging.INFO, __file__, 1, "hello", None, None)

        assert default_formatter().format(record).endswith("INFO: geodoc.test: hello")
        assert default_formatter("%(message)s").format(record) == "hello"


class TestGetLogger:
    def test_names_are_placed_under_geodoc(self, tmp_path):
        logger = get_logger("unit.test_get_logger", log_dir=tmp_path, file_mode="w", use_structlog=False)

        assert logger.name == "geodoc.unit.test_get_logger"
        assert logger.propagate is True
        log_file = tmp_path / "modules" / "geodoc.unit.test_get_logger.log"
        logger.debug("Debug message")
        assert "Debug message" in log_file.read_text()

    def test_geodoc_names_are_kept(self, tmp_path):
        logger = get_logger("geodoc.database.geo", log_dir=tmp_path, use_structlog=False)

        assert logger.name == "geodoc.database.geo"

    def test_empty_name(self, tmp_path):
        logger = get_logger("", log_dir=tmp_path, use_structlog=False)

        assert logger.name == "geodoc"

    def test_parents_with_handlers_lose_their_stream_handler(self, tmp_path):
        parent = get_logger("unit.parent", log_dir=tmp_path, use_structlog=False)
        assert any(type(h) is logging.StreamHandler for h in parent.handlers)

        get_logger("unit.parent.child", log_dir=tmp_path, use_structlog=False)

        assert not any(type(h) is logging.StreamHandler for h in parent.handlers)
        assert any(isinstance(h, RotatingFileHandler) for h in parent.handlers)


class TestStructlog:
    def test_structlog_logger_renders_json(self, tmp_path, reset_structlog):
        logger = get_logger(
            "unit.structured",
            use_structlog=True,
            log_dir=tmp_path,
            add_stream_handler=False,
            propagate=False,
            structlog_bind={"service": "parcels"},
        )

        logger.info("Structured log", geometry="Polygon")

        line = (tmp_path / "modules" / "geodoc.unit.structured.log").read_text().strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "Structured log"
        assert event["geometry"] == "Polygon"
        assert event["service"] == "parcels"
        assert event["level"] == "info"
        assert event["logger"] == "geodoc.unit.structured"
        assert list(event)[:4] == ["timestamp", "event", "level", "logger"]

    def test_key_order_processor(self):
        processor = _enforce_key_order_processor(["timestamp", "event", "level"])

        ordered = processor(None, "info", {"zeta": 1, "level": "info", "alpha": 2, "event": "hi"})

        assert list(ordered) == ["event", "level", "alpha", "zeta"]
