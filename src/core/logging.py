"""
Logging setup for okyimages.

The CLI configures the root logger once:
- stderr console handler with optional colors
- rotating plain-text log file
- rotating JSON-lines log file for machine reading

Library modules only ever call logging.getLogger(__name__).
"""

import json
import logging
import sys
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.core.paths import LOG_DIR

CONSOLE_FORMAT = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_CONSOLE_LEVEL = logging.WARNING
DEFAULT_FILE_LEVEL = logging.DEBUG

MAX_LOG_SIZE_MB = 5
MAX_LOG_FILES = 3

# Attributes every LogRecord has; anything else came in through `extra=`
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "asctime"}
)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        original_levelname = record.levelname
        record.levelname = f"{self.COLORS.get(record.levelno, '')}{original_levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


def _as_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper())
    return level


def setup_logging(
    console_level: int | str = DEFAULT_CONSOLE_LEVEL,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    log_dir: Path | str | None = None,
    log_file: str = "okyimages.log",
    structured_file: str | None = "okyimages.jsonl",
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        console_level: Level for stderr output
        file_level: Level for the log files
        log_dir: Directory for log files (defaults to DATA_ROOT/logs)
        log_file: Name of the plain-text log file
        structured_file: Name of the JSON-lines log file (None to disable)
        use_colors: Color the console level names

    Returns:
        The root logger
    """
    console_level = _as_level(console_level)
    file_level = _as_level(file_level)

    log_dir = Path(log_dir) if log_dir else LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        ColoredConsoleFormatter(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT, use_colors=use_colors)
    )
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_dir / log_file,
        maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024,
        backupCount=MAX_LOG_FILES,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    root_logger.addHandler(file_handler)

    if structured_file:
        structured_handler = RotatingFileHandler(
            log_dir / structured_file,
            maxBytes=MAX_LOG_SIZE_MB * 1024 * 1024,
            backupCount=MAX_LOG_FILES,
            encoding="utf-8",
        )
        structured_handler.setLevel(file_level)
        structured_handler.setFormatter(StructuredLogFormatter())
        root_logger.addHandler(structured_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging initialized (console: {logging.getLevelName(console_level)}, "
        f"file: {logging.getLevelName(file_level)})"
    )
    return root_logger


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: Exception,
    level: int = logging.ERROR,
    **extra: Any,
) -> None:
    """Log an exception with its type, traceback and extra fields."""
    logger.log(
        level,
        f"{message}: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra=extra,
    )


class OperationTimer:
    """
    Context manager that logs how long a block took.

    Usage:
        with OperationTimer(logger, "upload", filename=name):
            ...
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.DEBUG,
        **extra: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.extra = extra
        self.start_time: float | None = None
        self.duration: float | None = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return
        self.duration = time.monotonic() - self.start_time
        fields = {"operation": self.operation, "duration_seconds": self.duration, **self.extra}
        if exc_type is None:
            if self.duration < 1:
                duration_str = f"{self.duration * 1000:.1f}ms"
            else:
                duration_str = f"{self.duration:.2f}s"
            self.logger.log(self.level, f"{self.operation} completed in {duration_str}", extra=fields)
        else:
            self.logger.log(
                self.level,
                f"{self.operation} failed after {self.duration:.2f}s: {exc_val}",
                extra=fields,
            )


if __name__ == "__main__":
    import tempfile

    import fire

    def demo(level: str = "DEBUG", use_colors: bool = True):
        """Write a few records to a temporary log directory and print the files."""
        with tempfile.TemporaryDirectory() as tmp_dir:
            setup_logging(console_level=level, log_dir=tmp_dir, use_colors=use_colors)
            demo_logger = logging.getLogger("okyimages.demo")

            demo_logger.info("Info message")
            demo_logger.warning("Warning message")
            with OperationTimer(demo_logger, "sleep", level=logging.INFO):
                time.sleep(0.05)
            try:
                raise ValueError("demo failure")
            except ValueError as e:
                log_exception(demo_logger, "Caught exception", e)

            for f in sorted(Path(tmp_dir).iterdir()):
                print(f"== {f.name}")
                print(f.read_text()[:800])

    fire.Fire({"demo": demo})
