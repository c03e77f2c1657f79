# star_engine/logger.py
import logging
import sys
from pathlib import Path

ROOT_LOGGER_NAME = "star_engine"

logger = logging.getLogger(ROOT_LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Child logger under the star_engine tree."""
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logger.getChild(name)


def configure_logging(level=logging.INFO, log_path=None) -> logging.Logger:
    """
    Attach stdout (and optionally file) handlers to the engine logger.

    Safe to call repeatedly; each handler kind (and each log file) is only
    added once.
    """
    logger.setLevel(level)

    # Prevent duplicate handlers if configured multiple times
    tags = {getattr(h, "_star_engine", None) for h in logger.handlers}
    if "stream" not in tags:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        stream_handler._star_engine = "stream"
        logger.addHandler(stream_handler)

    if log_path is not None:
        log_path = Path(log_path)
        file_tag = f"file:{log_path.resolve()}"
        if file_tag not in tags:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            file_handler._star_engine = file_tag
            logger.addHandler(file_handler)

    return logger
