"""
Logging setup tests.
"""

import logging
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from star_engine import configure_logging, get_logger


def engine_handlers(log):
    return [h for h in log.handlers if getattr(h, "_star_engine", None)]


def test_file_handler_added_after_stream_only_setup(tmp_path):
    log = configure_logging(logging.INFO)
    try:
        configure_logging(logging.INFO)
        assert len(engine_handlers(log)) == 1

        path = tmp_path / "logs" / "engine.log"
        configure_logging(logging.INFO, log_path=path)
        configure_logging(logging.INFO, log_path=path)
        assert len(engine_handlers(log)) == 2

        get_logger("registry").info("schema run finished")
        for h in engine_handlers(log):
            h.flush()
        assert "schema run finished" in path.read_text(encoding="utf-8")
    finally:
        for h in engine_handlers(log):
            log.removeHandler(h)
            h.close()
        log.setLevel(logging.NOTSET)
