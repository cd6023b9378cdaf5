# src/formbridge/cli.py
"""formbridge Command Line Interface.

Operator tooling around a FormBridge instance: preview and apply schema
sync, inspect and override mappings, inspect option sets, run a lookup.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeVar

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from formbridge import __version__
from formbridge.contracts.enums import SyncMode
from formbridge.contracts.errors import MappingUpdateError, RecordStoreError, SchemaSyncError
from formbridge.contracts.sync import SyncApplyResult, SyncDiff
from formbridge.core.config import FormBridgeSettings, load_settings
from formbridge.service import FormBridge

__all__ = ["app"]

T = TypeVar("T")

app = typer.Typer(
    name="formbridge",
    help="formbridge: keep a form's field mapping in step with its record store.",
    no_args_is_help=True,
)

schema_app = typer.Typer(help="Schema sync commands.")
app.add_typer(schema_app, name="schema")

mappings_app = typer.Typer(help="Form field mapping commands.")
app.add_typer(mappings_app, name="mappings")

options_app = typer.Typer(help="Option set commands.")
app.add_typer(options_app, name="options")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"formbridge version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file. Environment variables (FORMBRIDGE_*) apply either way.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """formbridge: keep a form's field mapping in step with its record store."""
    from formbridge.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    ctx.obj = settings.expanduser() if settings is not None else None


def _load_cli_settings(settings_path: Path | None) -> FormBridgeSettings:
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings_path}: {e.problem}", err=True)
        raise typer.Exit(1) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings_path}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None


def _build_bridge(settings: FormBridgeSettings) -> FormBridge:
    return FormBridge.from_settings(settings)


def _run(ctx: typer.Context, action: Callable[[FormBridge], Awaitable[T]]) -> T:
    """Run one async action against a fresh FormBridge, closing it afterwards.

    Store and sync failures are reported on stderr and exit with status 1.
    """
    settings = _load_cli_settings(ctx.obj)

    async def _session() -> T:
        bridge = _build_bridge(settings)
        try:
            return await action(bridge)
        finally:
            await bridge.aclose()

    try:
        return asyncio.run(_session())
    except MappingUpdateError as e:
        typer.secho("Mapping update rejected:", fg=typer.colors.RED, err=True)
        for message in e.errors:
            typer.echo(f"  - {message}", err=True)
        raise typer.Exit(1) from None
    except (RecordStoreError, SchemaSyncError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


def _format_option(default: OutputFormat = OutputFormat.CONSOLE) -> Any:
    return typer.Option(
        default,
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    )


def _print_diff(diff: SyncDiff) -> None:
    typer.echo(f"Preview at {diff.timestamp}")

    typer.echo(f"\nMapping issues ({len(diff.mapping_issues)}):")
    for row in diff.mapping_issues:
        suggestion = f" -> {row.suggested_field} ({row.suggestion_reason})" if row.suggested_field else ""
        typer.echo(f"  {row.form_key:28} {row.mapped_field!s:32} [{row.status}]{suggestion}")

    typer.echo(f"\nOption changes ({len(diff.updated_options)}):")
    for change in diff.updated_options:
        typer.echo(f"  {change.option_set} from {change.field}: {len(change.before)} -> {len(change.after)} choices")

    typer.echo(f"\nUnmapped fields ({len(diff.new_fields)}):")
    for unmapped in diff.new_fields:
        typer.echo(f"  {unmapped.name} ({unmapped.type})")


def _print_apply(result: SyncApplyResult) -> None:
    typer.echo(f"Synced at {result.synced_at}")
    typer.echo(f"  Option sets updated: {result.updated_options_count}")
    typer.echo(f"  Mappings updated: {result.mapping_updated_count}")
    for applied in result.applied_mappings:
        typer.echo(f"    {applied.form_key}: {applied.mapped_field} -> {applied.applied_field}")
    typer.echo(f"  Unmapped fields remaining: {len(result.remaining_unmapped_fields)}")
    if result.diff.mapping_issues:
        typer.echo(f"  Mapping issues without a confident fix: {len(result.diff.mapping_issues)}")


@schema_app.command("preview")
def schema_preview(
    ctx: typer.Context,
    output_format: OutputFormat = _format_option(),
) -> None:
    """Compare the live primary table against the effective configuration. Writes nothing."""

    async def action(bridge: FormBridge) -> SyncDiff:
        return await bridge.preview_schema_sync()

    diff = _run(ctx, action)
    if output_format == "json":
        _echo_json(diff.to_dict())
    else:
        _print_diff(diff)


@schema_app.command("apply")
def schema_apply(
    ctx: typer.Context,
    skip_mappings: bool = typer.Option(
        False,
        "--skip-mappings",
        help="Only sync option sets; leave broken mappings for manual repair.",
    ),
    output_format: OutputFormat = _format_option(),
) -> None:
    """Write option set changes and confident mapping repairs."""

    async def action(bridge: FormBridge) -> SyncApplyResult:
        return await bridge.apply_schema_sync(apply_suggested_mappings=not skip_mappings, mode=SyncMode.MANUAL)

    result = _run(ctx, action)
    if output_format == "json":
        _echo_json(result.to_dict())
    else:
        _print_apply(result)


@mappings_app.command("show")
def mappings_show(ctx: typer.Context) -> None:
    """Print the effective form key -> field mapping as JSON."""

    async def action(bridge: FormBridge) -> dict[str, str | None]:
        return await bridge.get_effective_field_map()

    _echo_json(_run(ctx, action))


def _parse_assignments(assignments: list[str]) -> dict[str, str]:
    updates: dict[str, str] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            typer.echo(f"Error: Expected KEY=FIELD, got '{assignment}'", err=True)
            raise typer.Exit(1)
        updates[key.strip()] = value
    return updates


@mappings_app.command("set")
def mappings_set(
    ctx: typer.Context,
    assignments: list[str] = typer.Argument(..., help="One or more KEY=FIELD pairs."),
) -> None:
    """Point form keys at live fields. Every target must exist and be writable."""
    updates = _parse_assignments(assignments)

    async def action(bridge: FormBridge) -> int:
        result = await bridge.apply_mapping_updates(updates)
        return result.changed_count

    changed = _run(ctx, action)
    typer.echo(f"Updated {changed} mapping(s).")


@options_app.command("show")
def options_show(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Only show this option set."),
) -> None:
    """Print effective option sets as JSON."""

    async def action(bridge: FormBridge) -> dict[str, list[str]]:
        return await bridge.get_effective_option_sets()

    option_sets = _run(ctx, action)
    if name is None:
        _echo_json(option_sets)
        return
    if name not in option_sets:
        typer.echo(f"Error: Unknown option set '{name}'.", err=True)
        typer.echo(f"Known option sets: {', '.join(sorted(option_sets))}", err=True)
        raise typer.Exit(1)
    _echo_json(option_sets[name])


@app.command()
def search(
    ctx: typer.Context,
    field: str = typer.Argument(..., help="Linked-record form field key, e.g. 'seller'."),
    query: str = typer.Argument("", help="Search text; empty lists the first records."),
) -> None:
    """Run one linked-record search and print the result as JSON."""

    async def action(bridge: FormBridge) -> dict[str, Any]:
        result = await bridge.search_linked_records(field, query)
        return result.to_dict()

    data = _run(ctx, action)
    _echo_json(data)
    if "error" in data and not data["records"]:
        raise typer.Exit(1)
