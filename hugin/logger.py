# === FILE: hugin/logger.py ===
"""Logging setup for **Hugin**.

All records go through the ``"Hugin"`` logger tree. Each component logs via
its own child (``Hugin.crawler``, ``Hugin.compliance``, ``Hugin.storage`` ...)
obtained from :func:`get_logger`, so the component shows up in ``%(name)s``
while a single :func:`configure` call controls output for all of them::

    from hugin.logger import get_logger
    logger = get_logger("crawler")
    logger.info("Crawl started")

Console output goes to stdout; an optional log file is rotated at 5 MiB.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "Hugin"

#: noisy third-party loggers kept at WARNING unless the crawler itself runs at DEBUG
_THIRD_PARTY: Final[tuple] = ("aiohttp.access", "aiohttp.client", "asyncio")

_LevelT = Union[int, str]


def _handler(stream_or_file: Union[Path, str, None], fmt: str) -> logging.Handler:
    if stream_or_file is None:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
    else:
        handler = RotatingFileHandler(
            filename=str(stream_or_file),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def get_logger(component: str | None = None) -> logging.Logger:
    """Logger of one component (``Hugin.<component>``), or the root project logger."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}" if component else LOGGER_NAME)


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the project logger tree.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Path to a logfile. *None* → console‑only output.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* – remove existing handlers; *False* – just append new one(s).
    """
    root = get_logger()
    root.setLevel(level)

    if replace_handlers:
        root.handlers.clear()

    root.addHandler(_handler(None, log_format))
    if log_file is not None:
        root.addHandler(_handler(log_file, log_format))

    root.propagate = False

    third_party_level = logging.DEBUG if root.level <= logging.DEBUG else logging.WARNING
    for name in _THIRD_PARTY:
        logging.getLogger(name).setLevel(third_party_level)
    return root


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Shortcut used by the CLI: replace handlers and return the logger."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


logger: logging.Logger = init_logging()

__all__ = ["logger", "get_logger", "configure", "init_logging", "LOGGER_NAME", "DEFAULT_FORMAT"]
