"""In-process publish/subscribe over hierarchical namespaces."""

from nsbus.config import BusConfig, load_bus_config
from nsbus.errors import (
    BusConfigError,
    InvalidCallbackError,
    InvalidSubscriptionTarget,
    NsBusError,
    ScenarioError,
)
from nsbus.kernel.debug_log import DiagnosticLogWriter
from nsbus.kernel.eventbus import Bus, new_instance
from nsbus.kernel.scheduler import AsyncioScheduler, TaskQueue
from nsbus.kernel.types import DiagnosticSink, SubscriptionHandle

__version__ = "0.1.0"

__all__ = [
    "AsyncioScheduler",
    "Bus",
    "BusConfig",
    "BusConfigError",
    "DiagnosticLogWriter",
    "DiagnosticSink",
    "InvalidCallbackError",
    "InvalidSubscriptionTarget",
    "NsBusError",
    "ScenarioError",
    "SubscriptionHandle",
    "TaskQueue",
    "load_bus_config",
    "new_instance",
]
