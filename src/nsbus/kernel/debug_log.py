"""JSONL diagnostic sink with size-based rotation and redaction."""

from __future__ import annotations

import json
import re
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional


_REDACTED = "***REDACTED***"
_BEARER_RE = re.compile(r"(?i)\bbearer\s+([^\s,;]+)")
_KEY_VALUE_RE = re.compile(
    r"(?i)\b(api[_-]?key|access[_-]?key|token|secret|password|authorization|cookie|private[_-]?key)\b\s*[:=]\s*([^\s,;]+)"
)
_SK_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9]{8,}\b")
_QUOTED_RE = re.compile(r"'[^']*'|\"[^\"]*\"")

ALLOWED_REDACTION = ("none", "default", "strict")
LOG_FILE_STEM = "nsbus"
LOG_FILE_SUFFIX = "log.jsonl"
LOG_FILE_NAME = "{0}.{1}".format(LOG_FILE_STEM, LOG_FILE_SUFFIX)


def now_ms() -> int:
    return int(time.time() * 1000)


class DiagnosticLogWriter:
    """Best-effort diagnostic sink; write failures are counted, never raised."""

    def __init__(
        self,
        *,
        logs_dir: Path,
        enabled: bool = True,
        component: str = "bus",
        max_file_bytes: int = 10 * 1024 * 1024,
        max_files: int = 5,
        redaction: str = "default",
    ) -> None:
        self._logs_dir = Path(logs_dir)
        self._enabled = bool(enabled)
        self._component = str(component or "bus")
        self._max_file_bytes = max(1, int(max_file_bytes or 0))
        self._max_files = max(1, int(max_files or 0))
        self._redaction = str(redaction or "default").strip().lower()
        if self._redaction not in ALLOWED_REDACTION:
            self._redaction = "default"
        self._write_errors = 0
        self._lock = threading.Lock()
        if self._enabled:
            try:
                self._logs_dir.mkdir(parents=True, exist_ok=True)
            except OSError:
                self._write_errors += 1

    @property
    def active_log_file(self) -> Path:
        return self._logs_dir / LOG_FILE_NAME

    def warn(self, message: str) -> None:
        self.write_entry(level="warn", message=message)

    def error(self, message: str) -> None:
        self.write_entry(level="error", message=message)

    def info(self, message: str) -> None:
        self.write_entry(level="info", message=message)

    def write_entry(
        self,
        *,
        level: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        ts_ms: Optional[int] = None,
    ) -> None:
        if not self._enabled:
            return

        record = {
            "ts_ms": int(ts_ms if ts_ms is not None else now_ms()),
            "level": str(level or "info"),
            "component": self._component,
            "message": self._redact_text(str(message or "")),
            "data": self._redact_payload(dict(data or {})),
        }

        with self._lock:
            try:
                line = json.dumps(
                    record,
                    ensure_ascii=True,
                    separators=(",", ":"),
                    default=str,
                )
                payload = (line + "\n").encode("utf-8")
                self._logs_dir.mkdir(parents=True, exist_ok=True)
                self._roll_over_locked(len(payload))
                with self.active_log_file.open("ab") as fp:
                    fp.write(payload)
            except (OSError, TypeError, ValueError):
                self._write_errors += 1

    def status(self) -> Dict[str, Any]:
        with self._lock:
            active = self.active_log_file
            rotated = []
            active_size = 0
            total_size = 0
            if self._enabled:
                active_size = active.stat().st_size if active.exists() else 0
                total_size = int(active_size)
                for index in range(1, self._max_files + 1):
                    path = self._generation_file(index)
                    if not path.is_file():
                        continue
                    rotated.append(str(path))
                    total_size += int(path.stat().st_size)

            return {
                "logs_enabled": self._enabled,
                "logs_dir": str(self._logs_dir),
                "logs_active_file": str(active),
                "logs_active_size_bytes": int(active_size),
                "logs_max_file_bytes": self._max_file_bytes,
                "logs_max_files": self._max_files,
                "logs_total_size_bytes": int(total_size),
                "logs_rotated_files": rotated,
                "logs_redaction": self._redaction,
                "logs_write_errors": int(self._write_errors),
            }

    def _roll_over_locked(self, incoming_size: int) -> None:
        active = self.active_log_file
        try:
            size = active.stat().st_size
        except FileNotFoundError:
            return
        if size + incoming_size <= self._max_file_bytes:
            return

        generations = [self._generation_file(index) for index in range(1, self._max_files + 1)]
        generations[-1].unlink(missing_ok=True)
        for newer, older in zip(reversed(generations[:-1]), reversed(generations[1:])):
            if newer.exists():
                newer.replace(older)
        active.replace(generations[0])

    def _generation_file(self, index: int) -> Path:
        # nsbus.log.jsonl -> nsbus.1.log.jsonl, so rotated files keep the .jsonl suffix.
        return self._logs_dir / "{0}.{1}.{2}".format(LOG_FILE_STEM, index, LOG_FILE_SUFFIX)

    def _redact_payload(self, value: Any) -> Any:
        if self._redaction == "none":
            return value
        if isinstance(value, dict):
            return {key: self._redact_payload(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._redact_payload(item) for item in value]
        if isinstance(value, str):
            return self._redact_text(value)
        if self._redaction == "strict":
            return _REDACTED
        return value

    def _redact_text(self, text: str) -> str:
        if not text or self._redaction == "none":
            return text
        masked = _BEARER_RE.sub("Bearer {0}".format(_REDACTED), text)
        masked = _KEY_VALUE_RE.sub(
            lambda m: "{0}={1}".format(m.group(1), _REDACTED),
            masked,
        )
        masked = _SK_KEY_RE.sub(_REDACTED, masked)
        if self._redaction == "strict":
            # Published payloads show up quoted in messages.
            masked = _QUOTED_RE.sub(_REDACTED, masked)
        return masked
