"""Scripted bus scenarios: TOML step lists replayed against a fresh bus."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from nsbus.config import BusConfig, parse_bus_config_data, read_toml
from nsbus.errors import ScenarioError
from nsbus.kernel.eventbus import Bus, new_instance
from nsbus.kernel.scheduler import TaskQueue
from nsbus.kernel.types import DiagnosticSink, SubscriptionHandle

ALLOWED_ACTIONS = ("subscribe", "publish", "unsubscribe", "flush")


@dataclass
class ScenarioStep:
    index: int
    action: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Scenario:
    config: BusConfig
    steps: List[ScenarioStep] = field(default_factory=list)
    source: Optional[Path] = None


@dataclass
class Delivery:
    step: int
    listener: str
    namespace: str
    args: List[Any]
    context: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "listener": self.listener,
            "namespace": self.namespace,
            "args": list(self.args),
            "context": self.context,
        }


def _require_str(step: Dict[str, Any], key: str, index: int) -> str:
    value = step.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ScenarioError("step {0}: '{1}' must be a non-empty string".format(index, key))
    return value


def _parse_step(raw: object, index: int) -> ScenarioStep:
    if not isinstance(raw, dict):
        raise ScenarioError("step {0}: expected a table".format(index))
    action = str(raw.get("action") or "").strip().lower()
    if action not in ALLOWED_ACTIONS:
        raise ScenarioError(
            "step {0}: unknown action {1!r}, expected one of {2}".format(
                index,
                raw.get("action"),
                "|".join(ALLOWED_ACTIONS),
            )
        )

    if action == "subscribe":
        _require_str(raw, "path", index)
        _require_str(raw, "listener", index)
    elif action == "publish":
        _require_str(raw, "path", index)
        if "args" in raw and not isinstance(raw["args"], list):
            raise ScenarioError("step {0}: 'args' must be an array".format(index))
    elif action == "unsubscribe":
        if not raw.get("listener") and not raw.get("path"):
            raise ScenarioError("step {0}: unsubscribe needs 'listener' or 'path'".format(index))

    data = {key: value for key, value in raw.items() if key != "action"}
    return ScenarioStep(index=index, action=action, data=data)


def parse_scenario_data(
    data: Dict[str, object],
    base_dir: Optional[Path] = None,
    log: Optional[DiagnosticSink] = None,
) -> Scenario:
    raw_steps = data.get("step", [])
    if not isinstance(raw_steps, list):
        raise ScenarioError("'step' must be an array of tables")
    return Scenario(
        config=parse_bus_config_data(data, base_dir=base_dir, log=log),
        steps=[_parse_step(raw, index) for index, raw in enumerate(raw_steps, start=1)],
    )


def load_scenario(path: Path, log: Optional[DiagnosticSink] = None) -> Scenario:
    scenario_file = Path(path)
    scenario = parse_scenario_data(
        read_toml(scenario_file),
        base_dir=scenario_file.resolve().parent,
        log=log,
    )
    scenario.source = scenario_file
    return scenario


class _Listener:
    def __init__(self, runner: "ScenarioRunner", name: str, namespace: str, bound: bool) -> None:
        self.name = name
        self.namespace = namespace
        self._runner = runner
        self._bound = bound

    def __call__(self, *args: Any) -> None:
        context = None
        if self._bound and args:
            context, args = args[0], args[1:]
        self._runner.record(
            Delivery(
                step=self._runner.current_step,
                listener=self.name,
                namespace=self.namespace,
                args=list(args),
                context=context,
            )
        )


class ScenarioRunner:
    """Executes scenario steps against one bus and records every delivery."""

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.deliveries: List[Delivery] = []
        self.current_step = 0
        self._handles: Dict[str, List[SubscriptionHandle]] = {}

    def record(self, delivery: Delivery) -> None:
        self.deliveries.append(delivery)

    def run(self, steps: List[ScenarioStep]) -> List[Delivery]:
        for step in steps:
            self.current_step = step.index
            getattr(self, "_do_{0}".format(step.action))(step.data)
        self.current_step = len(steps) + 1
        self.bus.flush()
        return self.deliveries

    def _do_subscribe(self, data: Dict[str, Any]) -> None:
        name = str(data["listener"])
        path = str(data["path"])
        context = data.get("context")
        listener = _Listener(self, name, path, bound=context is not None or self.bus.config.context is not None)
        replay = bool(data.get("replay", False))
        if data.get("once"):
            handle = self.bus.subscribe_once(path, listener, context=context, replay=replay)
        else:
            handle = self.bus.subscribe(path, listener, context=context, replay=replay)
        self._handles.setdefault(name, []).append(handle)  # type: ignore[arg-type]

    def _do_publish(self, data: Dict[str, Any]) -> None:
        self.bus.publish(
            str(data["path"]),
            list(data.get("args") or []),
            recurrent=data.get("recurrent"),
            depth=data.get("depth"),
            deferred=data.get("deferred"),
            replay=bool(data.get("replay", False)),
        )

    def _do_unsubscribe(self, data: Dict[str, Any]) -> None:
        name = data.get("listener")
        if name:
            self.bus.unsubscribe(self._handles.pop(str(name), []))
            return
        self.bus.unsubscribe(str(data["path"]))

    def _do_flush(self, data: Dict[str, Any]) -> None:
        self.bus.flush()


def run_scenario(scenario: Scenario) -> ScenarioRunner:
    config = scenario.config
    if config.scheduler is None:
        # Steps drain deferred work themselves through "flush" and the final flush.
        config = config.merged(scheduler=TaskQueue())
    runner = ScenarioRunner(new_instance(config))
    runner.run(scenario.steps)
    return runner
