"""Tests for the ``deploy`` command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from natsforge.cli import cli
from tests.conftest import scenario_a, scenario_b


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, _clean_env: None) -> None:
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def descriptor(tmp_path: Path) -> Path:
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps(scenario_b(tmp_path / "out")))
    return path


class TestDeployCommand:
    def test_rich_output(self, cli_runner: CliRunner, descriptor: Path, tmp_path: Path) -> None:
        result = cli_runner.invoke(cli, ["deploy", str(descriptor), "--issuer", "memory"])
        assert result.exit_code == 0, result.output
        assert "OK  deploy" in result.stdout
        assert (tmp_path / "out" / "leaf" / "nats.conf").is_file()

    def test_json_output(self, cli_runner: CliRunner, descriptor: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "deploy", str(descriptor), "--issuer", "memory"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert set(data["data"]["server_configs"]) == {"hub", "leaf"}
        assert data["data"]["ephemeral_store"] is True

    def test_ephemeral_store_is_removed(self, cli_runner: CliRunner, descriptor: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "deploy", str(descriptor), "--issuer", "memory"]
        )
        assert not Path(json.loads(result.stdout)["data"]["store"]).exists()

    def test_quiet_prints_config_paths(
        self, cli_runner: CliRunner, descriptor: Path, tmp_path: Path
    ) -> None:
        result = cli_runner.invoke(cli, ["-q", "deploy", str(descriptor), "--issuer", "memory"])
        lines = result.stdout.splitlines()
        assert [Path(p).parent.name for p in lines] == ["hub", "leaf"]

    def test_persistent_store_and_reuse(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        store = tmp_path / "trust"
        data = scenario_a(tmp_path / "out")
        # The operator keeps its descriptor name when reused.
        (store / "acme").mkdir(parents=True)
        (store / "acme" / "acme.jwt").write_text("e30.eyJzdWIiOiJPUCJ9.sig")
        path = tmp_path / "d.json"
        path.write_text(json.dumps(data))

        result = cli_runner.invoke(
            cli,
            [
                "--json",
                "deploy",
                str(path),
                "--issuer",
                "memory",
                "--store-dir",
                str(store),
                "--reuse-operator",
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)["data"]
        assert payload["operator"] == "acme"
        assert payload["ephemeral_store"] is False
        assert store.is_dir()

    def test_failure_exits_nonzero(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        data = scenario_a(tmp_path / "out")
        del data["servers"][0]["accounts"][0]
        path = tmp_path / "d.json"
        path.write_text(json.dumps(data))
        result = cli_runner.invoke(cli, ["deploy", str(path), "--issuer", "memory"])
        assert result.exit_code == 1
        assert "stage: system_account" in result.stderr
        assert result.stdout == ""

    def test_default_system_account_flag(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        data = scenario_a(tmp_path / "out")
        del data["servers"][0]["accounts"][0]
        path = tmp_path / "d.json"
        path.write_text(json.dumps(data))
        result = cli_runner.invoke(
            cli,
            ["deploy", str(path), "--issuer", "memory", "--allow-default-system-account"],
        )
        assert result.exit_code == 0, result.output

    def test_json_failure_on_stderr(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "d.json"
        path.write_text("{}")
        result = cli_runner.invoke(cli, ["--json", "deploy", str(path), "--issuer", "memory"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "DESCRIPTOR_INVALID"

    def test_config_file_selects_issuer(
        self, cli_runner: CliRunner, descriptor: Path, tmp_path: Path
    ) -> None:
        (tmp_path / "natsforge.toml").write_text('[issuer]\nkind = "memory"\n')
        result = cli_runner.invoke(cli, ["deploy", str(descriptor)])
        assert result.exit_code == 0, result.output

    def test_missing_descriptor_is_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["deploy", "nope.json"])
        assert result.exit_code == 2
