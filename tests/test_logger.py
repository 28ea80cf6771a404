"""Test logging setup"""

import io
import logging
import sys

from spotify_exporter.core.logger import (
    ColoredConsoleFormatter,
    TqdmLoggingHandler,
    get_logger,
    setup_logging,
    shutdown_logging,
)


class TestSetupLogging:
    """Test setup_logging() outputs"""

    def test_console_only(self):
        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], TqdmLoggingHandler)
        assert handlers[0].level == logging.INFO
        shutdown_logging()

    def test_verbose_console(self):
        setup_logging(verbose=True)

        assert logging.getLogger().handlers[0].level == logging.DEBUG
        shutdown_logging()

    def test_log_files(self, tmp_path):
        log_dir = tmp_path / "logs"
        setup_logging(log_dir)

        logger = get_logger("spotify_exporter.test")
        logger.debug("debug line")
        logger.error("error line")
        shutdown_logging()

        full = next(log_dir.glob("log_full_*.log")).read_text()
        errors = next(log_dir.glob("log_errors_*.log")).read_text()
        assert "debug line" in full and "error line" in full
        assert "error line" in errors
        assert "debug line" not in errors

    def test_shutdown_removes_handlers(self, tmp_path):
        setup_logging(tmp_path / "logs")
        shutdown_logging()

        assert logging.getLogger().handlers == []


class TestTqdmLoggingHandler:
    """Test the console handler"""

    def test_writes_to_stream(self):
        stream = io.StringIO()
        handler = TqdmLoggingHandler(stream)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

        handler.emit(logging.makeLogRecord({"msg": "hello", "levelno": logging.INFO, "levelname": "INFO"}))

        assert stream.getvalue() == "INFO hello\n"


class TestColoredConsoleFormatter:
    """Test console formatting"""

    def test_exception_stays_out_of_console(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.getLogger("spotify_exporter.test").makeRecord(
                "spotify_exporter.test", logging.ERROR, __file__, 0,
                "Storage error: boom", None, sys.exc_info(),
            )

        output = ColoredConsoleFormatter().format(record)

        assert "Storage error: boom" in output
        assert "Traceback" not in output

    def test_exception_reaches_log_files(self, tmp_path):
        log_dir = tmp_path / "logs"
        setup_logging(log_dir)

        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("spotify_exporter.test").error("Storage error: boom", exc_info=True)
        shutdown_logging()

        assert "Traceback" in next(log_dir.glob("log_errors_*.log")).read_text()
