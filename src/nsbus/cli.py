"""Typer CLI entrypoints for nsbus."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from nsbus.config import BusConfig, load_bus_config
from nsbus.errors import BusConfigError, ScenarioError
from nsbus.scenario import Scenario, ScenarioRunner, load_scenario, run_scenario
from nsbus.ui.render import (
    ConsoleDiagnosticSink,
    render_deliveries,
    render_deliveries_json,
    render_namespace_tree,
    render_notice,
)

app = typer.Typer(
    no_args_is_help=True,
    help="Run and inspect namespace event bus scenarios.",
)


def _load_or_exit(path: Path, verbose: bool) -> Scenario:
    try:
        return load_scenario(path, log=ConsoleDiagnosticSink(show_info=verbose))
    except (BusConfigError, ScenarioError) as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=2)


def _run_or_exit(scenario: Scenario) -> ScenarioRunner:
    try:
        return run_scenario(scenario)
    except ScenarioError as exc:
        typer.echo(render_notice("error", str(exc)), err=True)
        raise typer.Exit(code=2)


@app.command("run")
def run_cmd(
    scenario_file: Path = typer.Argument(..., help="Scenario TOML file"),
    as_json: bool = typer.Option(False, "--json", help="Print deliveries as JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Show info diagnostics"),
) -> None:
    runner = _run_or_exit(_load_or_exit(scenario_file, verbose))
    if as_json:
        typer.echo(render_deliveries_json(runner.deliveries))
        return
    render_deliveries(runner.deliveries, sys.stdout)


@app.command("tree")
def tree_cmd(
    scenario_file: Path = typer.Argument(..., help="Scenario TOML file"),
    verbose: bool = typer.Option(False, "--verbose", help="Show info diagnostics"),
) -> None:
    runner = _run_or_exit(_load_or_exit(scenario_file, verbose))
    render_namespace_tree(runner.bus.namespaces(), runner.bus.config.separator, sys.stdout)


@app.command("config")
def config_cmd(
    config_file: Optional[Path] = typer.Option(None, "--file", help="Bus config TOML file"),
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    config = BusConfig()
    if config_file is not None:
        try:
            config = load_bus_config(config_file)
        except BusConfigError as exc:
            typer.echo(render_notice("error", str(exc)), err=True)
            raise typer.Exit(code=2)

    described = config.describe()
    if as_json:
        typer.echo(json.dumps(described, ensure_ascii=False, indent=2))
        return
    for key, value in described.items():
        typer.echo("{0}={1}".format(key, value))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
