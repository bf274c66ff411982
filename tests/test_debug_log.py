from __future__ import annotations

import json

from nsbus import new_instance
from nsbus.kernel.debug_log import DiagnosticLogWriter


def _records(writer):
    return [
        json.loads(line)
        for line in writer.active_log_file.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def test_writer_records_levels(tmp_path):
    writer = DiagnosticLogWriter(logs_dir=tmp_path / "logs", redaction="none")

    writer.warn("There is no a/b subscription")
    writer.error("Wrong namespace provided ''")
    writer.info("publish a")

    records = _records(writer)
    assert [record["level"] for record in records] == ["warn", "error", "info"]
    assert records[0]["component"] == "bus"
    assert records[0]["message"] == "There is no a/b subscription"


def test_rotation_respects_size_and_max_files(tmp_path):
    writer = DiagnosticLogWriter(
        logs_dir=tmp_path / "logs",
        max_file_bytes=256,
        max_files=2,
        redaction="none",
    )

    for idx in range(40):
        writer.write_entry(level="info", message="rotation-{0}".format(idx), data={"blob": "x" * 80})

    status = writer.status()
    assert status["logs_enabled"] is True
    assert status["logs_active_size_bytes"] > 0
    assert len(status["logs_rotated_files"]) <= 2
    assert not (tmp_path / "logs" / "nsbus.3.log.jsonl").exists()
    assert status["logs_rotated_files"][0].endswith("nsbus.1.log.jsonl")
    newest_rotated = (tmp_path / "logs" / "nsbus.1.log.jsonl").read_text(encoding="utf-8").splitlines()
    assert all(json.loads(line)["message"].startswith("rotation-") for line in newest_rotated)


def test_fail_open_tracks_write_errors(tmp_path):
    blocked_path = tmp_path / "not-a-dir"
    blocked_path.write_text("file", encoding="utf-8")
    writer = DiagnosticLogWriter(logs_dir=blocked_path)

    writer.warn("should not raise")

    assert writer.status()["logs_write_errors"] >= 1


def test_default_redaction_masks_secrets(tmp_path):
    writer = DiagnosticLogWriter(logs_dir=tmp_path)

    writer.info("publish auth args=('token=abc123', 'Bearer xyz', 'sk-ABCDEFGH1234')")

    message = _records(writer)[0]["message"]
    assert "abc123" not in message
    assert "xyz" not in message
    assert "sk-ABCDEFGH1234" not in message
    assert "***REDACTED***" in message


def test_strict_redaction_masks_quoted_payloads(tmp_path):
    writer = DiagnosticLogWriter(logs_dir=tmp_path, redaction="strict")

    writer.write_entry(level="info", message="publish a args=('alice', 3)", data={"n": 3, "who": "x"})

    record = _records(writer)[0]
    assert "alice" not in record["message"]
    assert record["data"]["n"] == "***REDACTED***"


def test_disabled_writer_writes_nothing(tmp_path):
    writer = DiagnosticLogWriter(logs_dir=tmp_path / "logs", enabled=False)

    writer.warn("ignored")

    assert not (tmp_path / "logs").exists()
    assert writer.status()["logs_enabled"] is False


def test_bus_reports_diagnostics_to_writer(tmp_path):
    writer = DiagnosticLogWriter(logs_dir=tmp_path)
    bus = new_instance(log=writer)

    bus.publish("missing/path")

    levels = [record["level"] for record in _records(writer)]
    assert "warn" in levels
