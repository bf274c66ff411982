from __future__ import annotations

from pathlib import Path

import pytest

from nsbus import BusConfig, BusConfigError, DiagnosticLogWriter, load_bus_config


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "nsbus.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    config = BusConfig()

    assert config.separator == "/"
    assert config.recurrent is False
    assert config.depth is None
    assert config.deferred is False
    assert config.isolate_errors is True
    assert config.log is None


def test_bad_direct_values_are_normalised():
    config = BusConfig(separator="", depth=-3)

    assert config.separator == "/"
    assert config.depth is None


def test_load_bus_config_reads_bus_table(tmp_path: Path):
    path = _write(
        tmp_path,
        "\n".join(
            [
                "[bus]",
                'separator = "."',
                "recurrent = true",
                "depth = 2",
                'deferred = "yes"',
                "isolate_errors = false",
            ]
        ),
    )

    config = load_bus_config(path)

    assert config.separator == "."
    assert config.recurrent is True
    assert config.depth == 2
    assert config.deferred is True
    assert config.isolate_errors is False
    assert config.log is None


def test_load_bus_config_falls_back_on_bad_values(tmp_path: Path):
    path = _write(
        tmp_path,
        "\n".join(
            [
                "[bus]",
                'separator = "*"',
                'recurrent = "maybe"',
                'depth = "deep"',
                "",
                "[logs]",
                "max_files = -1",
            ]
        ),
    )

    config = load_bus_config(path)

    assert config.separator == "/"
    assert config.recurrent is False
    assert config.depth is None


def test_logs_table_builds_jsonl_sink_relative_to_file(tmp_path: Path):
    path = _write(
        tmp_path,
        "\n".join(
            [
                "[logs]",
                "enabled = true",
                'dir = "logs"',
                "max_files = 3",
                'redaction = "strict"',
            ]
        ),
    )

    config = load_bus_config(path)

    assert isinstance(config.log, DiagnosticLogWriter)
    status = config.log.status()
    assert status["logs_dir"] == str(tmp_path.resolve() / "logs")
    assert status["logs_max_files"] == 3
    assert status["logs_redaction"] == "strict"


def test_explicit_sink_wins_over_logs_table(tmp_path: Path):
    path = _write(tmp_path, "[logs]\nenabled = true\n")
    marker = object()

    config = load_bus_config(path, log=marker)  # type: ignore[arg-type]

    assert config.log is marker


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(BusConfigError):
        load_bus_config(tmp_path / "absent.toml")


def test_invalid_toml_raises(tmp_path: Path):
    path = _write(tmp_path, "[bus\nseparator = ")

    with pytest.raises(BusConfigError):
        load_bus_config(path)


def test_describe_is_plain_data():
    described = BusConfig(separator=".", context="ctx").describe()

    assert described["separator"] == "."
    assert described["context"] == "'ctx'"
    assert described["scheduler"] is None
