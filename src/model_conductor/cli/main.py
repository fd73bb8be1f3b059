from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import click

from model_conductor import constants
from model_conductor.cli.formatters import role_rows, table
from model_conductor.clients.config_store import load_fast_path
from model_conductor.clients.inference import InferenceClient
from model_conductor.config import Settings
from model_conductor.models.enums import Role
from model_conductor.services.classifier import PatternTableError, classify, load_pattern_table
from model_conductor.services.setup_service import (
    EmptyCatalogError,
    ServerUnreachableError,
    SetupService,
)
from model_conductor.services.supervisor_service import SupervisorConfigError, SupervisorService
from model_conductor.ui.selector import SelectionCancelled, TerminalSelector
from model_conductor.utils.logging import setup_logging
from model_conductor.utils.roster import RosterError, load_manifest, load_roster


def _status(message: str) -> None:
    click.echo(message, err=True)


def _settings(
    base_url: Optional[str] = None,
    non_interactive: bool = False,
    config: Optional[str] = None,
) -> Settings:
    settings = Settings.from_env()
    updates = {}
    if base_url:
        updates["base_url"] = base_url.rstrip("/")
    if non_interactive:
        updates["non_interactive"] = True
    if config:
        updates["config_path"] = Path(config)
    return settings.model_copy(update=updates)


def _pattern_table(settings: Settings):
    try:
        return load_pattern_table(settings.patterns_file)
    except PatternTableError as exc:
        raise click.ClickException(str(exc)) from exc


def _catalog(client: InferenceClient):
    if not client.probe():
        raise click.ClickException(f"Inference server at {client.base_url} is unreachable.")
    catalog = client.fetch_catalog()
    if not catalog:
        raise click.ClickException("No models are loaded on the inference server.")
    return catalog


base_url_option = click.option(
    "--base-url", help=f"Inference server URL (defaults to ${constants.BASE_URL_ENV_VAR} or {constants.DEFAULT_BASE_URL})."
)


@click.group(help="Model Conductor command-line interface.")
@click.option("--verbose", is_flag=True, default=False, help="Log debug output to stderr.")
def cli(verbose: bool) -> None:
    """Root command for Model Conductor."""
    setup_logging(console_level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@base_url_option
@click.option("--reconfigure", is_flag=True, default=False, help="Ignore any saved role configuration.")
@click.option(
    "--non-interactive",
    is_flag=True,
    default=False,
    help=f"Accept the suggested models without prompting (also ${constants.NON_INTERACTIVE_ENV_VAR}).",
)
@click.option("--config", type=click.Path(dir_okay=False), help="Role configuration file path.")
def detect(base_url: Optional[str], reconfigure: bool, non_interactive: bool, config: Optional[str]) -> None:
    """Assign loaded models to roles and print the primary model ID to stdout."""
    settings = _settings(base_url, non_interactive, config)
    service = SetupService(
        settings,
        InferenceClient(settings.base_url),
        TerminalSelector(settings),
        _pattern_table(settings),
        status=_status,
    )
    try:
        role_config = service.run(reconfigure=reconfigure)
    except (ServerUnreachableError, EmptyCatalogError, SelectionCancelled) as exc:
        raise click.ClickException(str(exc)) from exc

    _status(table(["ROLE", "MODEL"], role_rows(role_config.as_role_mapping())))
    click.echo(role_config.primary_model, nl=False)


@cli.command()
@base_url_option
def probe(base_url: Optional[str]) -> None:
    """Check that the inference server is reachable."""
    settings = _settings(base_url)
    client = InferenceClient(settings.base_url)
    if not client.probe():
        raise click.ClickException(f"Inference server at {client.base_url} is unreachable.")
    _status(f"Inference server at {client.base_url} is reachable.")


@cli.command("models")
@base_url_option
def list_models(base_url: Optional[str]) -> None:
    """List the models currently loaded on the inference server."""
    settings = _settings(base_url)
    catalog = _catalog(InferenceClient(settings.base_url))
    rows = [[model.id, model.owned_by or ""] for model in catalog]
    _status(table(["ID", "OWNED BY"], rows, max_widths={0: 80}))


@cli.command("classify")
@base_url_option
def classify_models(base_url: Optional[str]) -> None:
    """Show the heuristic role guess for each role without saving anything."""
    settings = _settings(base_url)
    pattern_table = _pattern_table(settings)
    catalog = _catalog(InferenceClient(settings.base_url))
    guesses = {role: classify(catalog, role, pattern_table) for role in Role.selection_order()}
    _status(table(["ROLE", "GUESS"], role_rows(guesses)))


@cli.command()
@click.option(
    "--roster",
    type=click.Path(dir_okay=False),
    default=constants.ROSTER_FILENAME,
    show_default=True,
    help="Expert roster document.",
)
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False),
    default=constants.MANIFEST_FILENAME,
    show_default=True,
    help="Worker launch manifest (mcpServers JSON).",
)
@click.option(
    "--plugin-root",
    type=click.Path(file_okay=False),
    help="Directory exported to workers as the plugin root (defaults to the roster's directory).",
)
@click.option("--wait/--no-wait", default=True, show_default=True, help="Stay resident after spawning.")
def supervise(roster: str, manifest: str, plugin_root: Optional[str], wait: bool) -> None:
    """Spawn the worker processes listed in the roster and stay resident."""
    settings = _settings()
    roster_path = Path(roster)
    root = Path(plugin_root) if plugin_root else roster_path.resolve().parent

    _status("Orchestrator initializing...")
    try:
        specs, manifest_errors = load_manifest(Path(manifest))
        service = SupervisorService(
            settings,
            load_roster(roster_path),
            specs,
            root,
            manifest_errors=manifest_errors,
            role_config=load_fast_path(settings.config_path),
            base_env=os.environ,
        )
    except (RosterError, SupervisorConfigError) as exc:
        raise click.ClickException(str(exc)) from exc

    _status(f"Primary model: {settings.primary_model}")
    report = service.spawn_all()
    for name, pid in report.started.items():
        _status(f"   - {name} started (pid {pid})")
    for name, reason in report.failed.items():
        _status(f"   - {name} not started: {reason}")

    if wait:
        _status("System ready. Waiting for tasks (Ctrl-C to stop).")
        service.wait_until_stopped()


if __name__ == "__main__":
    cli()
