import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure application-wide logging with console + optional rotating file."""
    root = logging.getLogger()
    if root.handlers:
        # Avoid double configuration if reloaded
        return

    root.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    root.addHandler(console)

    if log_file:
        parent = os.path.dirname(log_file)
        if parent:
            os.makedirs(parent, exist_ok=True)
        file_handler = TimedRotatingFileHandler(log_file, when="midnight", backupCount=7, encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)
