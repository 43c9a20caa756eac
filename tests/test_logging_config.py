from __future__ import annotations

import logging

import pytest

from logging_config import ContextualFormatter, configure_logging, reset_logging


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    saved_level = root.level
    saved_quiet = {name: logging.getLogger(name).level for name in ("httpx", "httpcore")}
    reset_logging()
    yield root
    reset_logging()
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, ContextualFormatter):
            root.removeHandler(handler)
    root.setLevel(saved_level)
    for name, level in saved_quiet.items():
        logging.getLogger(name).setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.synchronizer",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Submitted site outages.",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_context_in_key_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    output = formatter.format(_record(record_count=3, site_id="kingfisher"))

    assert output == "Submitted site outages. | site_id=kingfisher record_count=3"


def test_formatter_skips_missing_and_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["site_id", "kind"])

    output = formatter.format(_record(site_id=None, status=500))

    assert output == "Submitted site outages."


def test_configure_logging_installs_contextual_stderr_handler(restore_logging) -> None:
    configure_logging("WARNING")

    root = restore_logging
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, ContextualFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_configure_logging_applies_once_until_reset(restore_logging) -> None:
    root = restore_logging

    configure_logging("ERROR")
    configure_logging("DEBUG")
    assert root.level == logging.ERROR

    reset_logging()
    configure_logging("DEBUG")
    assert root.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG
