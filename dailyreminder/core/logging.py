import logging
import sys
from typing import Optional

from dailyreminder.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging once for the process.

    Falls back to LOG_LEVEL / LOG_FILE from settings. Output always goes to
    stdout; a file handler is added only when a log file is configured.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = log_file or settings.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
        handlers=handlers,
    )
