"""Log handlers for import runs.

Parsers log fragments of bank alerts and statement rows, so every handler
installed here masks long digit runs (account and card numbers) before a
record is written.
"""

import logging
import re
import sys
from pathlib import Path

PACKAGE_LOGGER = "finance_importer"
DEFAULT_LOG_FILE = "finance_importer.log"

# File records carry timestamps, console records do not
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ACCOUNT_NUMBER = re.compile(r"\d{9,}")


def mask_account_numbers(text: str) -> str:
    """Replace digit runs of nine or more with X's, keeping the last four."""
    return _ACCOUNT_NUMBER.sub(lambda m: "X" * (len(m.group()) - 4) + m.group()[-4:], text)


class AccountMaskFilter(logging.Filter):
    """Rewrite each record's message with account numbers masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_account_numbers(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _make_handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(AccountMaskFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Install file and console handlers on the package logger.

    Calling this again replaces the handlers from the previous call, which
    lets the CLI start logging before settings.yaml is read and switch to
    the configured file afterwards.

    Args:
        level: Level name; unknown names fall back to INFO.
        log_file: Log file path. None means DEFAULT_LOG_FILE and an empty
            string turns file logging off.
        console_output: Also log to stderr.

    Returns:
        The package logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is None:
        log_file = DEFAULT_LOG_FILE
    if log_file:
        file_handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        logger.addHandler(_make_handler(file_handler, numeric_level, FILE_FORMAT))

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        logger.addHandler(_make_handler(console_handler, numeric_level, CONSOLE_FORMAT))

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace for ``name``."""
    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
