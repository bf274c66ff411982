from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

import nsbus.cli

SCENARIO = """
[[step]]
action = "subscribe"
path = "hello/world"
listener = "greeter"

[[step]]
action = "subscribe"
path = "hello/*"
listener = "catch-all"

[[step]]
action = "publish"
path = "hello/world"
args = ["hi", 2]
"""


def _combined_output(result) -> str:
    try:
        return result.stdout + result.stderr
    except ValueError:
        return result.stdout


def _scenario(tmp_path: Path) -> Path:
    path = tmp_path / "scenario.toml"
    path.write_text(SCENARIO, encoding="utf-8")
    return path


def test_run_prints_deliveries(tmp_path: Path):
    result = CliRunner().invoke(nsbus.cli.app, ["run", str(_scenario(tmp_path))])

    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines == [
        'step=3 listener=catch-all namespace=hello/* args=["hi", 2]',
        'step=3 listener=greeter namespace=hello/world args=["hi", 2]',
    ]


def test_run_json_output(tmp_path: Path):
    result = CliRunner().invoke(nsbus.cli.app, ["run", str(_scenario(tmp_path)), "--json"])

    assert result.exit_code == 0
    parsed = json.loads(result.stdout)
    assert [item["listener"] for item in parsed] == ["catch-all", "greeter"]
    assert parsed[0]["args"] == ["hi", 2]


def test_tree_prints_namespaces(tmp_path: Path):
    result = CliRunner().invoke(nsbus.cli.app, ["tree", str(_scenario(tmp_path))])

    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        "hello subscriptions=0",
        "  hello/world subscriptions=1",
        "  hello/* subscriptions=1",
    ]


def test_run_missing_scenario_exits_2(tmp_path: Path):
    result = CliRunner().invoke(nsbus.cli.app, ["run", str(tmp_path / "missing.toml")])

    assert result.exit_code == 2
    assert "Missing config file" in _combined_output(result)


def test_config_defaults_json():
    result = CliRunner().invoke(nsbus.cli.app, ["config", "--json"])

    assert result.exit_code == 0
    parsed = json.loads(result.stdout)
    assert parsed["separator"] == "/"
    assert parsed["depth"] is None


def test_config_from_file(tmp_path: Path):
    path = tmp_path / "nsbus.toml"
    path.write_text('[bus]\nseparator = "."\nrecurrent = true\n', encoding="utf-8")

    result = CliRunner().invoke(nsbus.cli.app, ["config", "--file", str(path)])

    assert result.exit_code == 0
    assert "separator=." in result.stdout.splitlines()
    assert "recurrent=True" in result.stdout.splitlines()
