"""Utilities and helper functions."""

import logging
import re
import sys
import unicodedata
from logging.handlers import RotatingFileHandler
from typing import Optional


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = "edit_helper.log",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    console_output: bool = True,
) -> None:
    """Setup logging for the helper.

    Parameters
    ----------
    level: int
        Logging level.
    log_file: str
        Path to the log file. ``None`` disables file logging.
    max_bytes: int
        Maximum size in bytes before rotating the log file.
    backup_count: int
        Number of rotated log files to keep.
    console_output: bool
        Whether to also log to the console.
    """

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)


def parse_duration(duration_str: str) -> int:
    """Parse a duration string (e.g. '1:30', '1:02:03') into seconds."""
    if not duration_str:
        return 0

    try:
        parts = list(map(int, duration_str.strip().split(":")))
    except ValueError:
        return 0

    if len(parts) == 3:  # H:MM:SS
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    elif len(parts) == 2:  # M:SS
        return parts[0] * 60 + parts[1]
    elif len(parts) == 1:
        return parts[0]
    return 0


def format_duration(seconds: int) -> str:
    """Format seconds the way Discogs expects durations (M:SS or H:MM:SS)."""
    if seconds < 0:
        return "0:00"
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02}:{seconds:02}"
    return f"{minutes}:{seconds:02}"


def normalize_duration(duration_str: str) -> str:
    """Drop leading zeros from the first component: '03:45' -> '3:45', '00:45' -> '0:45'."""
    parts = duration_str.strip().split(":")
    try:
        parts[0] = str(int(parts[0]))
    except ValueError:
        return duration_str.strip()
    return ":".join(parts)


def normalize_position(position: str) -> str:
    """Strip leading zeros from every digit run of a track position ('A01' -> 'A1', '00' -> '0')."""
    return re.sub(r"(?<!\d)0+(?=\d)", "", position.strip())


_DISAMBIGUATOR_RE = re.compile(r"\s*\([^()]*\)\s*$")

_CREDIT_KEY_CACHE = {}


def credit_key(name: str) -> str:
    """Comparison key for artist credits.

    Case, accents, surrounding punctuation and a trailing Discogs disambiguator
    such as ``(2)`` are ignored, so ``"Artist (3)"`` and ``"artist"`` compare equal.
    """
    if not isinstance(name, str):
        name = str(name)

    if name in _CREDIT_KEY_CACHE:
        return _CREDIT_KEY_CACHE[name]

    key = _DISAMBIGUATOR_RE.sub("", name)
    key = unicodedata.normalize("NFKD", key.lower())
    key = "".join(c for c in key if not unicodedata.combining(c))
    key = re.sub(r"\s+", " ", key).strip(" .,;:-")

    _CREDIT_KEY_CACHE[name] = key
    return key


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return re.sub(r"\s+", " ", text).strip()
