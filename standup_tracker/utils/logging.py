import logging
import sys
from typing import Iterable

# Client libraries that log every request at INFO
CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def setup_logging(level: str = "INFO", quiet: Iterable[str] = CHATTY_LOGGERS) -> None:
    """Configure root logging for the standup tracker.

    Loggers named in ``quiet`` are held at WARNING unless the tracker itself
    runs at DEBUG.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )

    if numeric_level > logging.DEBUG:
        for name in quiet:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
