"""Invokes subscription callbacks for one matched trie node."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from nsbus.kernel.types import DiagnosticSink, Scheduler, Subscription, callback_name


@dataclass
class DispatchStats:
    notified: int = 0
    failed: int = 0
    scheduled: int = 0


class Dispatcher:
    """Runs callbacks now or hands them to the scheduler, isolating failures when asked."""

    def __init__(
        self,
        scheduler: Scheduler,
        log: Optional[DiagnosticSink] = None,
        isolate_errors: bool = True,
    ) -> None:
        self._scheduler = scheduler
        self._log = log
        self._isolate_errors = bool(isolate_errors)
        self.stats = DispatchStats()

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def dispatch(self, subscriptions: List[Subscription], args: tuple, deferred: bool = False) -> None:
        if not subscriptions:
            return

        # Callbacks may unsubscribe themselves or siblings while we iterate.
        snapshot = list(subscriptions)
        for subscription in snapshot:
            if deferred:
                self._scheduler.submit(self._task(subscription, args))
                self.stats.scheduled += 1
            else:
                self.invoke(subscription, args)

    def invoke(self, subscription: Subscription, args: tuple) -> None:
        if not self._isolate_errors:
            subscription.invoke(args)
            self.stats.notified += 1
            return

        try:
            subscription.invoke(args)
        except Exception as exc:
            self.stats.failed += 1
            if self._log is not None:
                self._log.error(
                    "Subscriber {0} failed: {1}: {2}".format(
                        callback_name(subscription.callback),
                        type(exc).__name__,
                        exc,
                    )
                )
            return
        self.stats.notified += 1

    def _task(self, subscription: Subscription, args: tuple):
        def run() -> None:
            self.invoke(subscription, args)

        return run
