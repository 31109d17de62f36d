"""Tests for structlog configuration."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest

from natsforge.config.logging import bound_run, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    forge = logging.getLogger("natsforge")
    forge_level = forge.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    forge.setLevel(forge_level)


def json_lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    def test_levels(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("natsforge").level == logging.DEBUG
        configure_logging(verbose=False)
        assert logging.getLogger("natsforge").level == logging.WARNING
        assert logging.getLogger().level == logging.WARNING

    def test_json_lines(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        get_logger("natsforge.test").info("account.created", account="APP")
        (line,) = json_lines(stream)
        assert line["event"] == "account.created"
        assert line["account"] == "APP"
        assert line["level"] == "info"
        assert line["logger"] == "natsforge.test"

    def test_stdlib_loggers_share_format(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        logging.getLogger("natsforge.infrastructure.issuer.nsc").debug("nsc %s", "init")
        (line,) = json_lines(stream)
        assert line["event"] == "nsc init"

    def test_quiet_below_warning(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=False, log_json=True, stream=stream)
        get_logger("natsforge.test").info("hidden")
        assert stream.getvalue() == ""


class TestBoundRun:
    def test_fields_bound_inside_block_only(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        log = get_logger("natsforge.test")
        with bound_run(deployment="hub-leaf", issuer="memory"):
            log.info("inside")
        log.info("outside")
        inside, outside = json_lines(stream)
        assert inside["deployment"] == "hub-leaf"
        assert inside["issuer"] == "memory"
        assert "deployment" not in outside
