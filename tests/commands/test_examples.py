"""Tests for --examples on every command."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from natsforge.cli import cli


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        ([], "natsforge deploy deployment.json"),
        (["deploy"], "--reuse-operator"),
        (["plan"], "natsforge plan deployment.json"),
        (["subject"], "natsforge subject"),
    ],
)
def test_examples(cli_runner: CliRunner, args: list[str], expected: str) -> None:
    result = cli_runner.invoke(cli, [*args, "--examples"])
    assert result.exit_code == 0
    assert expected in result.output
