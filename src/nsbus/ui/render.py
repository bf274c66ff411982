"""Presentation helpers for nsbus CLI output and console diagnostics."""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from nsbus.scenario import Delivery

_LEVEL_STYLES = {
    "info": "dim",
    "warn": "yellow",
    "error": "bold red",
    "success": "green",
}


def render_notice(level: str, message: str) -> str:
    prefix_map = {
        "info": "Info",
        "warn": "Warning",
        "error": "Error",
        "success": "Success",
    }
    return "{0}: {1}".format(prefix_map.get(level, "Info"), message)


def _is_tty(stream: TextIO, forced: Optional[bool]) -> bool:
    if forced is not None:
        return forced
    isatty = getattr(stream, "isatty", None)
    if callable(isatty):
        try:
            return bool(isatty())
        except ValueError:
            return False
    return False


class ConsoleDiagnosticSink:
    """Diagnostic sink that prints bus warnings to a Rich console (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None, show_info: bool = False) -> None:
        self._console = Console(file=stream or sys.stderr, highlight=False, soft_wrap=True)
        self._show_info = show_info

    def warn(self, message: str) -> None:
        self._print("warn", message)

    def error(self, message: str) -> None:
        self._print("error", message)

    def info(self, message: str) -> None:
        if self._show_info:
            self._print("info", message)

    def _print(self, level: str, message: str) -> None:
        self._console.print(Text(render_notice(level, message), style=_LEVEL_STYLES.get(level, "")))


def _format_args(args: Sequence[Any]) -> str:
    return json.dumps(list(args), ensure_ascii=False, default=str)


def render_deliveries(
    deliveries: Iterable[Delivery],
    stream: TextIO,
    is_tty: Optional[bool] = None,
) -> None:
    rows = list(deliveries)
    tty = _is_tty(stream, is_tty)

    if tty:
        table = Table(title="Deliveries", box=box.ROUNDED, header_style="bold cyan")
        table.add_column("step", justify="right")
        table.add_column("listener")
        table.add_column("namespace")
        table.add_column("args")
        for row in rows:
            table.add_row(str(row.step), row.listener, row.namespace, _format_args(row.args))
        Console(file=stream, highlight=False, soft_wrap=True).print(table)
        return

    for row in rows:
        stream.write(
            "step={0} listener={1} namespace={2} args={3}\n".format(
                row.step,
                row.listener,
                row.namespace,
                _format_args(row.args),
            )
        )
    if not rows:
        stream.write("no deliveries\n")
    stream.flush()


def render_deliveries_json(deliveries: Iterable[Delivery]) -> str:
    return json.dumps([item.as_dict() for item in deliveries], ensure_ascii=False, indent=2, default=str)


def build_namespace_tree(namespaces: Sequence[Tuple[str, int]], separator: str) -> Tree:
    tree = Tree(Text("(root)", style="bold"))
    nodes: Dict[str, Tree] = {}
    for path, count in namespaces:
        parent_path, _, segment = path.rpartition(separator)
        parent = nodes.get(parent_path, tree)
        label = Text(segment or "''")
        if count:
            label.append(" [{0}]".format(count), style="cyan")
        nodes[path] = parent.add(label)
    return tree


def render_namespace_tree(
    namespaces: Sequence[Tuple[str, int]],
    separator: str,
    stream: TextIO,
    is_tty: Optional[bool] = None,
) -> None:
    if _is_tty(stream, is_tty):
        Console(file=stream, highlight=False, soft_wrap=True).print(
            build_namespace_tree(namespaces, separator)
        )
        return

    lines: List[str] = []
    for path, count in namespaces:
        level = path.count(separator)
        lines.append("{0}{1} subscriptions={2}".format("  " * level, path, count))
    if not lines:
        lines.append("(empty)")
    stream.write("\n".join(lines) + "\n")
    stream.flush()
