"""Core typed contracts shared by the trie, dispatcher, and bus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

Callback = Callable[..., Any]
Task = Callable[[], None]


class DiagnosticSink(Protocol):
    def warn(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...


class Scheduler(Protocol):
    def submit(self, task: Task) -> None:
        ...


@dataclass
class Subscription:
    subscription_id: int
    callback: Callback
    context: Any = None

    def invoke(self, args: tuple) -> Any:
        if self.context is None:
            return self.callback(*args)
        return self.callback(self.context, *args)


@dataclass(frozen=True)
class SubscriptionHandle:
    """Locates one registration, or a whole namespace when ``subscription_id`` is None."""

    namespace: str
    subscription_id: Optional[int] = None


def callback_name(callback: Callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)
