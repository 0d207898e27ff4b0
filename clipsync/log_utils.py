import logging
import re
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_MAX_LENGTH = 500

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_for_logging(value: Optional[str], max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """
    Makes user-supplied text safe to put in a log line: control characters
    (newlines included) become spaces, runs of whitespace collapse, and long
    values are truncated with a trailing "...".
    """
    if not value:
        return ""
    if max_length < 0:
        max_length = DEFAULT_MAX_LENGTH
    if max_length == 0:
        return ""

    text = str(value)
    if len(text) > max_length:
        text = text[:max_length] + "..."

    text = _CONTROL_CHARS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def sanitize_path_for_logging(path: Optional[str], max_length: int = DEFAULT_MAX_LENGTH) -> str:
    return sanitize_for_logging(str(path) if path is not None else None, max_length)


def setup_logging(level: str = "INFO", console: Optional[Console] = None):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
