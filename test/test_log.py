"""Tests for logger configuration and the default status sink."""

import logging
import sys
import tempfile
import threading
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LogLens.utils.log import configure_logging, log, log_status


class TestConfigureLogging(unittest.TestCase):
    def tearDown(self) -> None:
        for handler in log.handlers:
            handler.close()
        log.handlers.clear()

    def test_log_file_records_thread_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            configure_logging(level="WARNING", action="search", log_to_file=True, log_dir=tmp)
            worker = threading.Thread(target=lambda: log.debug("scroll batch 1"), name="loglens-refresh_0")
            worker.start()
            worker.join()
            for handler in log.handlers:
                handler.flush()

            files = list((Path(tmp) / "search").glob("search_*.log"))
            self.assertEqual(len(files), 1)
            text = files[0].read_text(encoding="utf-8")
            for handler in log.handlers:
                handler.close()
            log.handlers.clear()
        self.assertIn("[DEBG] (loglens-refresh_0) scroll batch 1", text)

    def test_console_handler_uses_configured_level(self) -> None:
        configure_logging(level="warning")
        self.assertEqual(len(log.handlers), 1)
        self.assertEqual(log.handlers[0].level, logging.WARNING)
        self.assertFalse(log.propagate)


class TestLogStatus(unittest.TestCase):
    def test_error_status_stays_at_debug(self) -> None:
        with self.assertLogs("LogLens", level="DEBUG") as captured:
            log_status("Found 3 results total (displaying 3)")
            log_status("Error: HTTP 500")
        self.assertEqual([record.levelno for record in captured.records], [logging.INFO, logging.DEBUG])


if __name__ == "__main__":
    unittest.main()
