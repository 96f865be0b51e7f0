"""Utility functions for mockup automation."""

import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from colorama import Fore, Style, init

# Initialize colorama
init(autoreset=True)

# Line the job launcher looks for in a run's output
RESULT_PREFIX = "RESULT_PATH:"


def setup_logging(log_file: str = "logs/mockup_automation.log", level: str = "INFO") -> logging.Logger:
    """Setup logging configuration."""
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("MockupAutomation")
    logger.setLevel(logging.DEBUG)

    # Drop handlers from an earlier call (the API process reconfigures per app)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    # File handler
    fh = logging.FileHandler(log_file, encoding='utf-8')
    fh.setLevel(logging.DEBUG)
    file_fmt = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    fh.setFormatter(file_fmt)

    # Console handler with colors
    ch = logging.StreamHandler()
    ch.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_fmt = ColoredFormatter('%(levelname)s: %(message)s')
    ch.setFormatter(console_fmt)

    logger.addHandler(fh)
    logger.addHandler(ch)

    return logger


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }

    def format(self, record):
        # Color a copy so the file handler still sees the plain level name
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{Style.RESET_ALL}"
        return super().format(record)


def file_timestamp(now: Optional[datetime] = None) -> str:
    """
    ISO 8601 timestamp at second precision, safe for file names.

    2026-10-19T08:27:01.123Z becomes 2026-10-19T08-27-01.
    """
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec='seconds')
    return iso[:19].replace(':', '-').replace('.', '-')


def build_output_filename(color: str, now: Optional[datetime] = None) -> str:
    """Name of the persisted mockup for a colour at a given time."""
    return f"mockup_{color}_{file_timestamp(now)}.png"


def guess_extension(content_type: Optional[str], default: str = ".png") -> str:
    """Guess a file extension from a Content-Type header value."""
    if not content_type:
        return default
    mime = content_type.split(';', 1)[0].strip().lower()
    if mime == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime) or default
