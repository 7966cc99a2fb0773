from datetime import datetime
from logging import getLogger, getLevelName, basicConfig, DEBUG, INFO, WARNING, FileHandler, Formatter, Filter
from pathlib import Path
from typing import Optional

from config import LOG_LEVEL, LOG_PATH


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

PROJECT_LOGGER = "watson_stt"

# websockets logs every frame at DEBUG, which for audio means one line per chunk.
NOISY_LOGGERS = ("websockets", "asyncio")

_LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(funcName)s(): %(message)s"


class _ProjectLogFilter(Filter):
    """Passes everything from this package, and only INFO+ from the rest."""
    def filter(self, record):
        if record.name == PROJECT_LOGGER or record.name.startswith(PROJECT_LOGGER + "."):
            return True
        return record.levelno >= INFO


def resolve_log_level(name: str = LOG_LEVEL) -> int:
    """
    Map LOG_LEVEL to a logging level.

    DEV and PROD are shorthands (DEBUG and WARNING); standard level names work too.
    Unknown names fall back to INFO.
    """
    if name == "DEV":
        return DEBUG
    if name == "PROD":
        return WARNING
    level = getLevelName(name)
    return level if isinstance(level, int) else INFO


def setup_logging(level: Optional[int] = None, *, log_to_file: bool = True) -> Optional[Path]:
    """
    Configure console logging and, optionally, a per-run log file.

    The file always gets DEBUG for watson_stt modules and INFO+ for third parties.
    Calling it again does not add a second file handler.

    Returns the path to the log file (None without one).
    """
    if level is None:
        level = resolve_log_level()

    basicConfig(level=level, format=_LOG_FORMAT)
    for name in NOISY_LOGGERS:
        getLogger(name).setLevel(max(level, INFO))

    if not log_to_file:
        return None

    root = getLogger()
    for handler in root.handlers:
        if isinstance(handler, FileHandler) and getattr(handler, "watson_stt", False):
            return Path(handler.baseFilename)

    log_filename = LOG_PATH / f"watson_stt_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    file_handler = FileHandler(log_filename, encoding="utf-8")
    file_handler.watson_stt = True
    file_handler.setLevel(DEBUG)
    file_handler.setFormatter(Formatter(_LOG_FORMAT))
    file_handler.addFilter(_ProjectLogFilter())
    root.addHandler(file_handler)

    getLogger(__name__).info("Logging to file: %s", log_filename)
    return log_filename
