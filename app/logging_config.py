import logging
from logging.handlers import RotatingFileHandler
import os

LOG_DIR   = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

os.makedirs(LOG_DIR, exist_ok=True)


def get_logger(name, filename=None):
    """
    One logger per component, each writing to its own rotating file in LOG_DIR
    and echoing to stderr. filename defaults to "<name>.log".
    """
    logger = logging.getLogger(f"traveldiary.{name}")
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    # Avoid duplicated handlers when modules are re-imported
    if logger.handlers:
        return logger

    formatter = logging.Formatter(FORMAT)

    file_handler = RotatingFileHandler(
        os.path.join(LOG_DIR, filename or f"{name}.log"),
        maxBytes=5_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)

    return logger
