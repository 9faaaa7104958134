"""Command-line interface for the Bitrise provider."""

import asyncio
import json
import logging
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Optional

import httpx
import structlog
import typer
import yaml
from rich.console import Console
from rich.table import Table

from bitrise_provider import __version__
from bitrise_provider.config import CliConfig, LoggingConfig
from bitrise_provider.diagnostics import Diagnostic, Severity
from bitrise_provider.provider import BitriseProvider, OperationResult

SENSITIVE_MASK = "(sensitive)"
REDACTED = "[REDACTED]"
SENSITIVE_LOG_KEYS = {"token", "authorization", "private_key", "password", "secret"}
SENSITIVE_LOG_SUFFIXES = ("_token", "_secret", "_key", "_password")

# Create Typer app
app = typer.Typer(
    name="bitrise-provider",
    help="Drive Bitrise provider operations from YAML or JSON files",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def redact_sensitive(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask credential-looking string values before rendering."""
    for key, value in event_dict.items():
        lowered = key.lower()
        if isinstance(value, str) and (
            lowered in SENSITIVE_LOG_KEYS or lowered.endswith(SENSITIVE_LOG_SUFFIXES)
        ):
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Setup structured logging.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json or text).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_sensitive,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@dataclass
class CliState:
    """Options shared by every command."""

    provider: dict[str, Any] = field(default_factory=dict)
    show_sensitive: bool = False


def create_provider(
    raw: Optional[Mapping[str, Any]],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[BitriseProvider, OperationResult]:
    """Build and configure a provider from a provider block."""
    provider = BitriseProvider(__version__)
    return provider, provider.configure(raw, transport=transport)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"bitrise-provider {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    provider_config: Annotated[
        Optional[Path],
        typer.Option(
            "--provider-config",
            "-c",
            help="YAML or JSON file with 'provider' and 'logging' sections",
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            "-l",
            help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        ),
    ] = None,
    log_format: Annotated[
        Optional[str],
        typer.Option("--log-format", "-f", help="Log format (json or text)"),
    ] = None,
    show_sensitive: Annotated[
        bool,
        typer.Option("--show-sensitive", help="Print sensitive attribute values"),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """Bitrise provider - CRUD operations against the Bitrise API."""
    try:
        cli_config = CliConfig.from_file(provider_config) if provider_config else CliConfig()
        logging_config = LoggingConfig(
            level=log_level or cli_config.logging.level,
            format=log_format or cli_config.logging.format,
        )
    except (FileNotFoundError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        err_console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1) from e

    setup_logging(logging_config.level, logging_config.format)
    ctx.obj = CliState(provider=cli_config.provider, show_sensitive=show_sensitive)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _load_document(path: Optional[Path], what: str) -> Optional[dict[str, Any]]:
    """Load a YAML or JSON mapping from a file."""
    if path is None:
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        err_console.print(f"[red]Cannot read {what} file {path}: {e}[/red]")
        raise typer.Exit(1) from e
    except yaml.YAMLError as e:
        err_console.print(f"[red]Invalid {what} file {path}: {e}[/red]")
        raise typer.Exit(1) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        err_console.print(f"[red]{what.capitalize()} file {path} must contain a mapping[/red]")
        raise typer.Exit(1)
    return data


def _sensitive_attributes(provider: BitriseProvider, type_name: str) -> set[str]:
    schema = provider.resource_schemas().get(type_name) or provider.data_source_schemas().get(
        type_name
    )
    if not schema:
        return set()
    return {name for name, attr in schema["attributes"].items() if attr["sensitive"]}


def mask_sensitive(
    state: Optional[dict[str, Any]], sensitive: Iterable[str]
) -> Optional[dict[str, Any]]:
    """Replace known sensitive values with a placeholder."""
    if state is None:
        return None
    masked = dict(state)
    for name in sensitive:
        if masked.get(name) is not None:
            masked[name] = SENSITIVE_MASK
    return masked


def _display_diagnostics(diagnostics: Iterable[Diagnostic]) -> None:
    items = list(diagnostics)
    if not items:
        return
    table = Table(title="Diagnostics")
    table.add_column("Severity", style="bold")
    table.add_column("Summary", style="cyan")
    table.add_column("Attribute", style="magenta")
    table.add_column("Detail")
    for d in items:
        color = "red" if d.severity is Severity.ERROR else "yellow"
        table.add_row(
            f"[{color}]{d.severity.value}[/{color}]",
            d.summary,
            d.attribute or "",
            d.detail,
        )
    err_console.print(table)


def _finish(
    ctx: typer.Context,
    provider: BitriseProvider,
    type_name: str,
    configured: OperationResult,
    result: OperationResult,
) -> None:
    """Print the result and exit non-zero when an error diagnostic is present."""
    state = _state(ctx)
    output = result.to_dict()
    output.pop("diagnostics")
    if not state.show_sensitive:
        output["state"] = mask_sensitive(
            output["state"], _sensitive_attributes(provider, type_name)
        )

    diagnostics = [*configured.diagnostics, *result.diagnostics]
    if result.ok:
        typer.echo(json.dumps(output, indent=2, sort_keys=True))
    _display_diagnostics(diagnostics)
    if not result.ok:
        raise typer.Exit(1)


def _provider(ctx: typer.Context) -> tuple[BitriseProvider, OperationResult]:
    provider, configured = create_provider(_state(ctx).provider)
    if not configured.ok:
        _display_diagnostics(configured.diagnostics)
        raise typer.Exit(1)
    return provider, configured


TypeArgument = Annotated[str, typer.Argument(help="Type name, e.g. bitrise_app_secret")]


@app.command()
def schema(
    type_name: Annotated[
        Optional[str], typer.Argument(help="Only print the schema of this type")
    ] = None,
    data_source: Annotated[
        bool,
        typer.Option(
            "--data-source",
            "-d",
            help="Look the type up among data sources; some names are both",
        ),
    ] = False,
) -> None:
    """Print the provider schema as JSON.

    Without --data-source a type is looked up among resources first, then
    among data sources.
    """
    provider = BitriseProvider(__version__)
    full = provider.schema()
    if type_name is None:
        typer.echo(json.dumps(full, indent=2, default=str))
        return

    if data_source:
        selected = full["data_sources"].get(type_name)
    else:
        selected = full["resources"].get(type_name) or full["data_sources"].get(
            type_name
        )
    if selected is None:
        err_console.print(f"[red]Unknown type: {type_name}[/red]")
        raise typer.Exit(1)
    typer.echo(json.dumps(selected, indent=2, default=str))


@app.command()
def create(
    ctx: typer.Context,
    type_name: TypeArgument,
    plan: Annotated[Path, typer.Option("--plan", "-p", help="Planned state file")],
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Deadline in seconds")
    ] = None,
) -> None:
    """Create a resource from a planned state file."""
    planned = _load_document(plan, "plan")
    provider, configured = _provider(ctx)
    result = asyncio.run(provider.create_resource(type_name, planned, timeout=timeout))
    _finish(ctx, provider, type_name, configured, result)


@app.command()
def read(
    ctx: typer.Context,
    type_name: TypeArgument,
    state: Annotated[Path, typer.Option("--state", "-s", help="Current state file")],
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Deadline in seconds")
    ] = None,
) -> None:
    """Refresh a resource from its current state file."""
    current = _load_document(state, "state")
    provider, configured = _provider(ctx)
    result = asyncio.run(provider.read_resource(type_name, current, timeout=timeout))
    _finish(ctx, provider, type_name, configured, result)


@app.command()
def update(
    ctx: typer.Context,
    type_name: TypeArgument,
    prior: Annotated[Path, typer.Option("--prior", help="Prior state file")],
    plan: Annotated[Path, typer.Option("--plan", "-p", help="Planned state file")],
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Deadline in seconds")
    ] = None,
) -> None:
    """Update a resource in place."""
    prior_state = _load_document(prior, "prior state")
    planned = _load_document(plan, "plan")
    provider, configured = _provider(ctx)
    result = asyncio.run(
        provider.update_resource(type_name, prior_state, planned, timeout=timeout)
    )
    _finish(ctx, provider, type_name, configured, result)


@app.command()
def delete(
    ctx: typer.Context,
    type_name: TypeArgument,
    state: Annotated[Path, typer.Option("--state", "-s", help="Current state file")],
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Deadline in seconds")
    ] = None,
) -> None:
    """Delete a resource."""
    current = _load_document(state, "state")
    provider, configured = _provider(ctx)
    result = asyncio.run(provider.delete_resource(type_name, current, timeout=timeout))
    _finish(ctx, provider, type_name, configured, result)


@app.command("import")
def import_(
    ctx: typer.Context,
    type_name: TypeArgument,
    import_id: Annotated[str, typer.Argument(help="Import identifier, e.g. app_slug/name")],
) -> None:
    """Seed state from an import identifier."""
    provider, configured = _provider(ctx)
    result = provider.import_resource_state(type_name, import_id)
    _finish(ctx, provider, type_name, configured, result)


@app.command()
def plan(
    ctx: typer.Context,
    type_name: TypeArgument,
    prior: Annotated[
        Optional[Path], typer.Option("--prior", help="Prior state file (omit to create)")
    ] = None,
    proposed: Annotated[
        Optional[Path],
        typer.Option("--plan", "-p", help="Proposed state file (omit to delete)"),
    ] = None,
) -> None:
    """Classify the change between prior state and a proposed configuration."""
    prior_state = _load_document(prior, "prior state")
    proposed_state = _load_document(proposed, "plan")
    provider, configured = _provider(ctx)
    result = provider.plan_resource_change(type_name, prior_state, proposed_state)
    _finish(ctx, provider, type_name, configured, result)


@app.command()
def data(
    ctx: typer.Context,
    type_name: TypeArgument,
    config: Annotated[
        Optional[Path], typer.Option("--config", help="Data source configuration file")
    ] = None,
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Deadline in seconds")
    ] = None,
) -> None:
    """Read a data source."""
    settings = _load_document(config, "data source configuration")
    provider, configured = _provider(ctx)
    result = asyncio.run(provider.read_data_source(type_name, settings, timeout=timeout))
    _finish(ctx, provider, type_name, configured, result)


if __name__ == "__main__":
    app()
