"""Logging for gitflux: rich output on stderr, optional plain log file.

Every module logs through ``get_logger(__name__)``, which places it under the
``gitflux`` logger. ``setup_logging`` only touches that logger (and mutes the
HTTP client's per-request chatter), so embedding applications keep control
of the root logger.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT = "gitflux"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that log each request at INFO
_NOISY = ("httpx", "httpcore")


def _level_for(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    return logging.DEBUG if verbose else logging.WARNING


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Attach handlers to the ``gitflux`` logger.

    Safe to call more than once: handlers from a previous call are replaced.
    Output goes to stderr so JSON results on stdout stay parseable.

    Args:
        verbose: DEBUG level, with source paths and local variables in tracebacks
        quiet: ERROR level only (wins over ``verbose``)
        log_file: Also append plain-text records to this file

    Returns:
        The ``gitflux`` logger
    """
    level = _level_for(verbose, quiet)
    logger = logging.getLogger(ROOT)
    for handler in [h for h in logger.handlers if getattr(h, "_gitflux", False)]:
        logger.removeHandler(handler)
        handler.close()

    terminal = RichHandler(
        console=Console(stderr=True),
        markup=False,
        show_path=verbose,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
    )
    handlers: list[logging.Handler] = [terminal]
    if log_file:
        to_file = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        to_file.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(to_file)

    for handler in handlers:
        handler._gitflux = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(level)

    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name`` under the ``gitflux`` namespace (the root one for None)."""
    if not name:
        return logging.getLogger(ROOT)
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)
