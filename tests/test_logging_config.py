"""Tests for gitflux.logging_config module."""

import logging

import pytest

from gitflux.logging_config import ROOT, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    logger = logging.getLogger(ROOT)
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


class TestGetLogger:
    @pytest.mark.parametrize(
        "name, expected",
        [
            (None, "gitflux"),
            ("gitflux", "gitflux"),
            ("gitflux.engine", "gitflux.engine"),
            ("tools.export", "gitflux.tools.export"),
            ("gitfluxish", "gitflux.gitfluxish"),
        ],
    )
    def test_names_live_under_gitflux(self, name, expected):
        assert get_logger(name).name == expected


class TestSetupLogging:
    @pytest.mark.parametrize(
        "verbose, quiet, level",
        [(False, False, logging.WARNING), (True, False, logging.DEBUG), (True, True, logging.ERROR)],
    )
    def test_levels(self, verbose, quiet, level):
        assert setup_logging(verbose=verbose, quiet=quiet).level == level

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        setup_logging(verbose=True)
        installed = [h for h in logging.getLogger(ROOT).handlers if getattr(h, "_gitflux", False)]
        assert len(installed) == 1

    def test_root_logger_is_left_alone(self):
        root_handlers = list(logging.getLogger().handlers)
        setup_logging()
        assert logging.getLogger().handlers == root_handlers

    def test_http_client_is_quiet_unless_verbose(self):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
        setup_logging(verbose=True)
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_log_file(self, tmp_path):
        path = tmp_path / "gitflux.log"
        setup_logging(log_file=str(path))
        get_logger("engine").warning("budget exhausted")
        for handler in logging.getLogger(ROOT).handlers:
            handler.flush()
        assert "WARNING  gitflux.engine: budget exhausted" in path.read_text()
