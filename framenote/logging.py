"""Logging setup shared by the CLI, the API server and the editor controller."""

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER = "framenote"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
DETAILED_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that chatter at INFO level
NOISY_LOGGERS = ("werkzeug", "urllib3")


class ColoredFormatter(logging.Formatter):
    """Level names in ANSI colour when the target stream is a terminal."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str = None, use_colors: bool = True, stream: TextIO = None):
        super().__init__(fmt, datefmt)
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        # Copy so other handlers never see escape codes
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{self.COLORS.get(record.levelno, '')}{record.levelname}{self.RESET}"
        return super().format(colored)


def resolve_level(verbose: bool = False, quiet: bool = False) -> int:
    """--verbose wins over --quiet."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    return logging.INFO


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """Configure the ``framenote`` logger tree.

    Console output goes to stderr so command output on stdout (``framenote
    hash``) stays clean. A log file, when given, always records DEBUG.
    Calling this again replaces the previous handlers.
    """
    level = resolve_level(verbose, quiet)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.DEBUG if log_file else level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        ColoredFormatter(
            DETAILED_FORMAT if verbose else CONSOLE_FORMAT,
            datefmt="%H:%M:%S",
            use_colors=use_colors,
            stream=sys.stderr,
        )
    )
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(file_handler)

    root.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger under the ``framenote`` namespace (pass ``__name__``)."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name.split('.')[-1]}")
