"""Bus configuration: defaults, TOML loading, and value normalisation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

try:  # pragma: no cover - exercised on Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Python 3.9/3.10
    import tomli as tomllib  # type: ignore[no-redef]

from nsbus.errors import BusConfigError
from nsbus.kernel.debug_log import ALLOWED_REDACTION, DiagnosticLogWriter
from nsbus.kernel.types import DiagnosticSink, Scheduler

DEFAULT_SEPARATOR = "/"
DEFAULT_RECURRENT = False
DEFAULT_DEPTH: Optional[int] = None
DEFAULT_DEFERRED = False
DEFAULT_ISOLATE_ERRORS = True

DEFAULT_LOGS_ENABLED = False
DEFAULT_LOGS_DIR = ".nsbus/logs"
DEFAULT_LOGS_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_LOGS_MAX_FILES = 5
DEFAULT_LOGS_REDACTION = "default"


@dataclass(frozen=True)
class BusConfig:
    """Immutable per-bus defaults. Per-call options override these."""

    separator: str = DEFAULT_SEPARATOR
    recurrent: bool = DEFAULT_RECURRENT
    depth: Optional[int] = DEFAULT_DEPTH
    deferred: bool = DEFAULT_DEFERRED
    context: Any = None
    log: Optional[DiagnosticSink] = None
    scheduler: Optional[Scheduler] = None
    isolate_errors: bool = DEFAULT_ISOLATE_ERRORS

    def __post_init__(self) -> None:
        object.__setattr__(self, "separator", _safe_separator(self.separator, DEFAULT_SEPARATOR))
        object.__setattr__(self, "depth", _safe_depth(self.depth))
        object.__setattr__(self, "recurrent", bool(self.recurrent))
        object.__setattr__(self, "deferred", bool(self.deferred))
        object.__setattr__(self, "isolate_errors", bool(self.isolate_errors))

    def merged(self, **overrides: Any) -> "BusConfig":
        unknown = sorted(set(overrides) - set(self.__dataclass_fields__))
        if unknown:
            raise TypeError("Unknown bus config option(s): {0}".format(", ".join(unknown)))
        return replace(self, **overrides)

    def describe(self) -> Dict[str, Any]:
        return {
            "separator": self.separator,
            "recurrent": self.recurrent,
            "depth": self.depth,
            "deferred": self.deferred,
            "isolate_errors": self.isolate_errors,
            "context": None if self.context is None else repr(self.context),
            "log": None if self.log is None else type(self.log).__name__,
            "scheduler": None if self.scheduler is None else type(self.scheduler).__name__,
        }


@dataclass
class LogSettings:
    enabled: bool = DEFAULT_LOGS_ENABLED
    logs_dir: Path = field(default_factory=lambda: Path(DEFAULT_LOGS_DIR))
    max_file_bytes: int = DEFAULT_LOGS_MAX_FILE_BYTES
    max_files: int = DEFAULT_LOGS_MAX_FILES
    redaction: str = DEFAULT_LOGS_REDACTION

    def build_sink(self) -> Optional[DiagnosticLogWriter]:
        if not self.enabled:
            return None
        return DiagnosticLogWriter(
            logs_dir=self.logs_dir,
            enabled=True,
            max_file_bytes=self.max_file_bytes,
            max_files=self.max_files,
            redaction=self.redaction,
        )


def _safe_separator(value: object, default: str) -> str:
    if not isinstance(value, str) or not value or value == "*":
        return default
    return value


def _safe_depth(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        converted = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if converted <= 0:
        return None
    return converted


def _safe_positive_int_or_default(value: object, default: int) -> int:
    try:
        converted = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if converted <= 0:
        return default
    return converted


def _safe_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default


def _safe_redaction(value: object, default: str) -> str:
    normalized = str(value or default).strip().lower()
    if normalized not in ALLOWED_REDACTION:
        return default
    return normalized


def parse_log_settings(data: Dict[str, object], base_dir: Optional[Path] = None) -> LogSettings:
    logs = data.get("logs") if isinstance(data.get("logs"), dict) else {}
    raw_dir = str(logs.get("dir") or DEFAULT_LOGS_DIR).strip() or DEFAULT_LOGS_DIR  # type: ignore[union-attr]
    logs_dir = Path(raw_dir).expanduser()
    if not logs_dir.is_absolute() and base_dir is not None:
        logs_dir = base_dir / logs_dir
    return LogSettings(
        enabled=_safe_bool(logs.get("enabled"), DEFAULT_LOGS_ENABLED),  # type: ignore[union-attr]
        logs_dir=logs_dir,
        max_file_bytes=_safe_positive_int_or_default(
            logs.get("max_file_bytes"),  # type: ignore[union-attr]
            DEFAULT_LOGS_MAX_FILE_BYTES,
        ),
        max_files=_safe_positive_int_or_default(
            logs.get("max_files"),  # type: ignore[union-attr]
            DEFAULT_LOGS_MAX_FILES,
        ),
        redaction=_safe_redaction(logs.get("redaction"), DEFAULT_LOGS_REDACTION),  # type: ignore[union-attr]
    )


def parse_bus_config_data(
    data: Dict[str, object],
    base_dir: Optional[Path] = None,
    log: Optional[DiagnosticSink] = None,
) -> BusConfig:
    """Build a BusConfig from parsed TOML. Bad values fall back to defaults.

    ``log`` wins over a sink built from the ``[logs]`` table.
    """
    bus = data.get("bus") if isinstance(data.get("bus"), dict) else {}
    sink = log if log is not None else parse_log_settings(data, base_dir).build_sink()
    return BusConfig(
        separator=_safe_separator(bus.get("separator"), DEFAULT_SEPARATOR),  # type: ignore[union-attr]
        recurrent=_safe_bool(bus.get("recurrent"), DEFAULT_RECURRENT),  # type: ignore[union-attr]
        depth=_safe_depth(bus.get("depth")),  # type: ignore[union-attr]
        deferred=_safe_bool(bus.get("deferred"), DEFAULT_DEFERRED),  # type: ignore[union-attr]
        isolate_errors=_safe_bool(bus.get("isolate_errors"), DEFAULT_ISOLATE_ERRORS),  # type: ignore[union-attr]
        log=sink,
    )


def read_toml(path: Path) -> Dict[str, object]:
    config_file = Path(path)
    if not config_file.is_file():
        raise BusConfigError("Missing config file: {0}".format(config_file))
    try:
        parsed = tomllib.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise BusConfigError("Invalid config file: {0}".format(config_file)) from exc
    return parsed


def load_bus_config(path: Path, log: Optional[DiagnosticSink] = None) -> BusConfig:
    """Load ``[bus]`` and ``[logs]`` tables from a TOML file.

    Relative log directories resolve against the file's directory.
    """
    config_file = Path(path)
    return parse_bus_config_data(read_toml(config_file), base_dir=config_file.resolve().parent, log=log)
