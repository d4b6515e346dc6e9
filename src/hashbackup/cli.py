"""Command line interface for hashbackup."""

from __future__ import annotations

import difflib
import shlex
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from hashbackup.commands import OperatorCommands, describe_cycle, describe_restore
from hashbackup.config import ConfigError, ConfigManager, HashBackupConfig, resolve_with_precedence
from hashbackup.engine import BackupEngine, CycleReport
from hashbackup.logging_setup import configure_logging
from hashbackup.service import BackupService
from hashbackup.state import StateError

console = Console()

_STOP_WORDS = {"stop", "quit", "exit"}


def _emit_message(message: Any, *, mode: str, quiet: bool) -> None:
    """Print CLI output unless quiet mode suppresses it.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
    """
    if quiet and mode != "error":
        return
    console.print(message)


def _parse_overrides(values: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` pairs into dotted-key overrides with YAML-typed values.

    Raises:
        click.BadParameter: If an entry lacks ``=``.
    """
    overrides: dict[str, Any] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected KEY=VALUE, got {item!r}.", param_hint="--set")
        try:
            overrides[key.strip()] = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise click.BadParameter(f"Unable to parse value for {key}: {exc}", param_hint="--set") from exc
    return overrides


def _load_config(ctx: click.Context) -> HashBackupConfig:
    """Load configuration for the invoked command.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    options = ctx.find_root().obj or {}
    manager = ConfigManager(options.get("config_path"))
    try:
        return manager.load(cli_overrides=options.get("overrides") or None)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _build_engine(config: HashBackupConfig) -> BackupEngine:
    """Configure logging and construct the engine for ``config``.

    Raises:
        click.ClickException: If stored metadata cannot be loaded.
    """
    configure_logging(config.logging, config.backup.resolved_data_dir())
    try:
        return BackupEngine(config)
    except StateError as exc:
        raise click.ClickException(f"Unable to load backup metadata: {exc}") from exc


def _quiet_enabled(ctx: click.Context, quiet: bool, config: HashBackupConfig) -> bool:
    if ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE:
        return quiet
    return config.cli.quiet_default


def _emit_cycle(report: CycleReport, *, quiet: bool) -> None:
    """Render a completed cycle as a table plus summary line."""
    table = Table(title="Backup cycle")
    table.add_column("World")
    table.add_column("Status")
    table.add_column("Container")
    table.add_column("Files", justify="right")
    for world in report.worlds:
        table.add_row(world.world, world.status, world.container or "-", str(len(world.entries)))
    _emit_message(table, mode="detail", quiet=quiet)

    for failure in report.failures:
        _emit_message(f"[yellow]  - {failure}[/yellow]", mode="warning", quiet=quiet)

    color = "yellow" if report.failures else "green"
    _emit_message(f"[{color}]{describe_cycle(report)}[/{color}]", mode="summary", quiet=quiet)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="hashbackup")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file to use instead of ~/.hashbackup/config.yaml.",
)
@click.option(
    "-s",
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a configuration value, e.g. backup.worlds_root=/srv/minecraft.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, overrides: tuple[str, ...]) -> None:
    """hashbackup incrementally archives changed world files into rotating zip containers."""
    ctx.obj = {"config_path": config_path, "overrides": _parse_overrides(overrides)}


@cli.command()
@click.option("--interactive", is_flag=True, help="Read operator commands from stdin while running.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def run(ctx: click.Context, interactive: bool, quiet: bool) -> None:
    """Run backup cycles on the configured schedule until stopped.

    With --interactive, each stdin line is an operator command
    (`save`, `list [WORLD]`, `restore WORLD FILE`); `stop` or end of input exits.
    """
    config = _load_config(ctx)
    quiet_enabled = _quiet_enabled(ctx, quiet, config)
    engine = _build_engine(config)
    if not engine.worlds:
        _emit_message(
            "[yellow]No worlds configured; set backup.worlds to start archiving.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
        )

    service = BackupService(
        engine,
        interval_seconds=config.backup.interval_seconds,
        on_cycle=lambda report: _emit_message(
            f"[green]{describe_cycle(report)}[/green]", mode="summary", quiet=quiet_enabled
        ),
    )
    service.start()
    _emit_message(
        f"[cyan]Backing up {', '.join(engine.worlds) or 'no worlds'} every "
        f"{config.backup.interval_minutes} minute(s). Press Ctrl+C to stop.[/cyan]",
        mode="detail",
        quiet=quiet_enabled,
    )

    try:
        if interactive:
            commands = OperatorCommands(engine, service=service)
            for line in click.get_text_stream("stdin"):
                try:
                    args = shlex.split(line)
                except ValueError as exc:
                    console.print(f"Invalid command: {exc}", markup=False)
                    continue
                if not args:
                    continue
                if args[0].lower() in _STOP_WORDS:
                    break
                console.print(commands.dispatch(args), markup=False, highlight=False)
        else:
            while service.running:
                service.join(timeout=1.0)
    except KeyboardInterrupt:
        _emit_message("[yellow]Stopped by user request.[/yellow]", mode="summary", quiet=quiet_enabled)
    finally:
        service.stop()


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the cycle report as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def save(ctx: click.Context, json_output: bool, quiet: bool) -> None:
    """Run one backup cycle now."""
    config = _load_config(ctx)
    if json_output and quiet:
        raise click.ClickException("--json cannot be combined with --quiet.")
    engine = _build_engine(config)
    try:
        report = engine.run_cycle()
    except OSError as exc:
        raise click.ClickException(f"Backup failed: {exc}") from exc
    if json_output:
        console.print_json(data=report.to_payload())
        return
    _emit_cycle(report, quiet=_quiet_enabled(ctx, quiet, config))


@cli.command("list")
@click.argument("world", required=False)
@click.pass_context
def list_backups(ctx: click.Context, world: str | None) -> None:
    """List containers for WORLD, or the worlds that have backups."""
    engine = _build_engine(_load_config(ctx))
    if world is None:
        console.print(OperatorCommands(engine).list(), markup=False, highlight=False)
        return

    containers = engine.list_containers(world)
    if not containers:
        console.print(f"[yellow]No backups found for world: {world}[/yellow]")
        return

    active = engine.active_container(world)
    table = Table(title=f"Backups for {world}")
    table.add_column("Container")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Active")
    for info in containers:
        table.add_row(
            info.name,
            f"{info.size_bytes:,}",
            info.modified_at.isoformat(timespec="seconds"),
            "yes" if info.name == active else "",
        )
    console.print(table)


@cli.command()
@click.argument("world")
@click.argument("container")
@click.option("--yes", is_flag=True, help="Restore without asking for confirmation.")
@click.pass_context
def restore(ctx: click.Context, world: str, container: str, yes: bool) -> None:
    """Overwrite WORLD's files with the contents of CONTAINER."""
    engine = _build_engine(_load_config(ctx))
    if not yes:
        click.confirm(
            f"Restore {world} from {container}? Existing files will be overwritten.", abort=True
        )
    try:
        result = engine.restore(world, container)
    except OSError as exc:
        raise click.ClickException(f"Failed to restore: {exc}") from exc
    console.print(f"[green]{describe_restore(world, container, result)}[/green]")


@cli.group()
def config() -> None:
    """Manage hashbackup configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    options = ctx.find_root().obj or {}
    manager = ConfigManager(options.get("config_path"))
    try:
        loaded = manager.load(include_env=not no_env, cli_overrides=options.get("overrides") or None)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager((ctx.find_root().obj or {}).get("config_path"))
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'backup.max_backups'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    node = file_data
    for segment in segments[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise click.ClickException(f"Cannot assign into '{segment}' because it is not a mapping.")
        node = child
    node[segments[-1]] = parsed_value

    try:
        resolve_with_precedence(defaults=HashBackupConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    # The "Last updated" stamp always changes; only report real edits.
    if not any(
        line.startswith(("+", "-")) and "Last updated" not in line and not line.startswith(("+++", "---"))
        for line in diff
    ):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Console-script entry point."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
