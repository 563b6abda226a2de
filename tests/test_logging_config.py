"""
Tests for logging setup.
"""

import io
import json
import logging
import logging.handlers

from ocr_analyzer.logging_config import ColoredFormatter, log_exception, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler(self):
        stream = io.StringIO()
        logger = setup_logging(name="ocr_analyzer.tests.console", level="debug", stream=stream, json_format=False, log_file="")

        logger.debug("hello")

        assert "hello" in stream.getvalue()
        assert logger.level == logging.DEBUG
        assert not logger.propagate

    def test_reconfigure_replaces_handlers(self):
        for _ in range(3):
            logger = setup_logging(name="ocr_analyzer.tests.dupes", stream=io.StringIO(), log_file="")
        assert len(logger.handlers) == 1

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("LOG_CONSOLE", "false")
        logger = setup_logging(name="ocr_analyzer.tests.env", log_file="")

        assert logger.level == logging.ERROR
        assert logger.handlers == []

    def test_json_lines(self):
        stream = io.StringIO()
        logger = setup_logging(name="ocr_analyzer.tests.json", json_format=True, stream=stream, log_file="")

        logger.warning('depth "stale" for %s', "BTCUSDT")

        entry = json.loads(stream.getvalue())
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "ocr_analyzer.tests.json"
        assert entry["message"] == 'depth "stale" for BTCUSDT'

    def test_rotating_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging(name="ocr_analyzer.tests.file", console=False, log_file=str(log_file))

        logger.info("written")
        for handler in logger.handlers:
            handler.flush()

        assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)
        assert "written" in log_file.read_text()


class TestHelpers:
    """Tests for the formatter and exception helper."""

    def test_colored_levelname_restored(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[32mINFO" in output
        assert record.levelname == "INFO"

    def test_log_exception(self):
        stream = io.StringIO()
        logger = setup_logging(name="ocr_analyzer.tests.exc", stream=stream, log_file="")

        try:
            raise ValueError("bad payload")
        except ValueError as e:
            log_exception(logger, e, "Parse failed")

        assert "Parse failed: bad payload" in stream.getvalue()
        assert "Traceback" in stream.getvalue()
