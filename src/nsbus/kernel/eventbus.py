"""In-process namespace event bus."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from nsbus.config import BusConfig
from nsbus.errors import InvalidCallbackError, InvalidSubscriptionTarget
from nsbus.kernel.dispatcher import Dispatcher
from nsbus.kernel.scheduler import AsyncioScheduler, TaskQueue
from nsbus.kernel.trie import NamespaceTrie
from nsbus.kernel.types import Callback, Scheduler, Subscription, SubscriptionHandle, callback_name

UnsubscribeTarget = Union[SubscriptionHandle, str, Sequence[Union[SubscriptionHandle, str]], None]


class Bus:
    """Publish/subscribe over separator-delimited namespaces.

    Each instance owns its own trie, replay cache, and scheduler; instances never
    share state. Create them with :func:`new_instance`.
    """

    def __init__(self, config: Optional[BusConfig] = None) -> None:
        self._config = config or BusConfig()
        self._log = self._config.log
        self._trie = NamespaceTrie(separator=self._config.separator, log=self._log)
        self._replay: Dict[str, Tuple[Any, ...]] = {}
        self._ids = itertools.count(1)
        scheduler = self._config.scheduler
        if scheduler is None:
            scheduler = _default_scheduler()
        # An implicit TaskQueue only runs when the application calls flush().
        self._flush_notice_pending = self._config.scheduler is None and isinstance(scheduler, TaskQueue)
        self._dispatcher = Dispatcher(
            scheduler=scheduler,
            log=self._log,
            isolate_errors=self._config.isolate_errors,
        )

    @property
    def config(self) -> BusConfig:
        return self._config

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def new_instance(self, config: Optional[BusConfig] = None, **overrides: Any) -> "Bus":
        return new_instance(config, **overrides)

    def publish(
        self,
        namespace: str,
        args: Optional[Iterable[Any]] = None,
        *,
        recurrent: Optional[bool] = None,
        depth: Optional[int] = None,
        deferred: Optional[bool] = None,
        replay: bool = False,
    ) -> None:
        if not isinstance(namespace, str) or not namespace:
            self._error("Wrong namespace provided {0!r}".format(namespace))
            return

        payload = tuple(args) if args is not None else ()
        if replay:
            self._replay[namespace] = payload

        if depth is not None and (isinstance(depth, bool) or not isinstance(depth, int) or depth <= 0):
            self._warn("Ignoring invalid depth {0!r} for {1}".format(depth, namespace))
            depth = None

        self._info("publish {0} args={1!r}".format(namespace, payload))
        self._trie.match_and_dispatch(
            namespace.split(self._config.separator),
            payload,
            self._dispatcher.dispatch,
            recurrent=self._config.recurrent if recurrent is None else bool(recurrent),
            depth=self._config.depth if depth is None else depth,
            deferred=self._config.deferred if deferred is None else bool(deferred),
        )
        if self._flush_notice_pending and self._dispatcher.stats.scheduled:
            self._flush_notice_pending = False
            self._warn(
                "Deferred callbacks for {0} are queued until Bus.flush() is called; "
                "no asyncio loop was running when this bus was created".format(namespace)
            )

    def subscribe(
        self,
        namespace: Union[str, Sequence[str]],
        callback: Union[Callback, Sequence[Callback]],
        *,
        context: Any = None,
        replay: bool = False,
    ) -> Union[SubscriptionHandle, List[SubscriptionHandle]]:
        """Register ``callback`` at ``namespace``.

        Either argument may be a list; then one registration is made per
        (namespace, callback) pair, namespaces outer and callbacks inner, and a
        flat list of handles is returned.
        """
        namespaces = _as_list(namespace, str)
        callbacks = _as_list(callback, None)
        if namespaces is None and callbacks is None:
            return self._subscribe_one(namespace, callback, context, replay)  # type: ignore[arg-type]

        pairs = [
            (item, fn)
            for item in (namespaces if namespaces is not None else [namespace])
            for fn in (callbacks if callbacks is not None else [callback])
        ]
        # Reject the whole call before any registration or replay happens.
        for item, fn in pairs:
            self._check_subscription(item, fn)
        return [self._subscribe_one(item, fn, context, replay) for item, fn in pairs]  # type: ignore[arg-type]

    def subscribe_once(
        self,
        namespace: str,
        callback: Callback,
        *,
        context: Any = None,
        replay: bool = False,
    ) -> SubscriptionHandle:
        if not callable(callback):
            raise InvalidCallbackError(namespace, callback)

        handle: Optional[SubscriptionHandle] = None
        fired = False

        def once(*args: Any) -> Any:
            nonlocal fired
            if fired:
                return None
            fired = True
            try:
                return callback(*args)
            finally:
                if handle is not None:
                    self.unsubscribe(handle)

        once.__qualname__ = "once({0})".format(callback_name(callback))

        handle = self._subscribe_one(namespace, once, context, replay)
        if fired:
            # Replay delivered the only call before the registration existed.
            self.unsubscribe(handle)
        return handle

    def unsubscribe(self, target: UnsubscribeTarget) -> None:
        if target is None:
            return
        if isinstance(target, (SubscriptionHandle, str)):
            self._unsubscribe_one(target)
            return
        if isinstance(target, (list, tuple)):
            for item in target:
                if not isinstance(item, (SubscriptionHandle, str)):
                    raise InvalidSubscriptionTarget(item)
            for item in target:
                self._unsubscribe_one(item)
            return
        raise InvalidSubscriptionTarget(target)

    def flush(self) -> int:
        """Run pending deferred callbacks when the scheduler is a local queue."""
        run_pending = getattr(self._dispatcher.scheduler, "run_pending", None)
        if not callable(run_pending):
            return 0
        return int(run_pending())

    def namespaces(self) -> List[Tuple[str, int]]:
        return self._trie.walk()

    def _subscribe_one(
        self,
        namespace: str,
        callback: Callback,
        context: Any,
        replay: bool,
    ) -> SubscriptionHandle:
        self._check_subscription(namespace, callback)
        subscription = Subscription(
            subscription_id=next(self._ids),
            callback=callback,
            context=self._config.context if context is None else context,
        )

        if replay and namespace in self._replay:
            self._info("replay {0} -> {1}".format(namespace, callback_name(callback)))
            self._dispatcher.invoke(subscription, self._replay[namespace])

        return self._trie.insert(namespace.split(self._config.separator), subscription)

    def _check_subscription(self, namespace: object, callback: object) -> None:
        if not isinstance(namespace, str) or not namespace:
            raise InvalidSubscriptionTarget(namespace)
        if not callable(callback):
            raise InvalidCallbackError(namespace, callback)

    def _unsubscribe_one(self, target: Union[SubscriptionHandle, str]) -> None:
        if isinstance(target, str):
            target = SubscriptionHandle(namespace=target)

        namespace = target.namespace
        separator = self._config.separator
        # Handles name the exact node they were inserted at; only bare paths are trimmed.
        if target.subscription_id is None and namespace.endswith(separator):
            namespace = namespace[: -len(separator)]
        if not namespace:
            self._warn("Wrong namespace provided {0!r}".format(target.namespace))
            return

        self._info("unsubscribe {0}".format(namespace))
        self._trie.remove(namespace.split(separator), target.subscription_id)

    def _info(self, message: str) -> None:
        if self._log is not None:
            self._log.info(message)

    def _warn(self, message: str) -> None:
        if self._log is not None:
            self._log.warn(message)

    def _error(self, message: str) -> None:
        if self._log is not None:
            self._log.error(message)


def _default_scheduler() -> Scheduler:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return TaskQueue()
    return AsyncioScheduler(loop=loop)


def _as_list(value: object, scalar_type: Optional[type]) -> Optional[list]:
    if scalar_type is not None and isinstance(value, scalar_type):
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def new_instance(config: Optional[BusConfig] = None, **overrides: Any) -> Bus:
    """Create an isolated bus from ``config`` (or the defaults) with ``overrides`` applied."""
    base = config or BusConfig()
    if overrides:
        base = base.merged(**overrides)
    return Bus(base)
