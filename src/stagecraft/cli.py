# src/stagecraft/cli.py
"""stagecraft Command Line Interface.

Entry point for the stagecraft CLI tool: a text driver over the workspace
that lists the stage catalog, assembles pipelines from settings files and
runs previews.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from stagecraft import __version__
from stagecraft.contracts import CatalogError, CycleDetectedError, GraphValidationError, RunResult
from stagecraft.core.config import StagecraftSettings, load_settings

if TYPE_CHECKING:
    from stagecraft.workspace import Workspace

__all__ = [
    "app",
    "load_settings",  # Re-exported from config for convenience
]

app = typer.Typer(
    name="stagecraft",
    help="stagecraft: design data pipelines and preview them over sample data.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"stagecraft version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables (e.g. STAGECRAFT_* overrides) from a .env file.

    Raises:
        typer.Exit: If an explicit env_file path doesn't exist.
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
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # Existence checked in _load_dotenv for a better message
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
    """stagecraft: design data pipelines and preview them over sample data."""
    # Configure logging before any subcommand runs
    from stagecraft.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "WARNING"
    configure_logging(json_output=json_logs, level=log_level)
    # Command-line flags win over the settings file's logging section
    ctx.obj = {"logging_from_flags": verbose or json_logs}

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    console.print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", expand=False))


def _load_settings_or_exit(settings: str) -> tuple[StagecraftSettings, Path]:
    """Load settings, turning every load failure into a message and exit code 1."""
    settings_path = Path(settings).expanduser()
    try:
        config = load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_validation_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if getattr(e, "problem", None) else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _format_validation_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            details.append(f"{loc}: {error['msg']}")
        _format_validation_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None
    return config, settings_path


def _apply_logging_settings(ctx: typer.Context, config: StagecraftSettings) -> None:
    """Reconfigure logging from the settings file unless flags already chose it."""
    from stagecraft.core.logging import configure_logging

    if ctx.obj and ctx.obj.get("logging_from_flags"):
        return
    configure_logging(json_output=config.logging.json_output, level=config.logging.level)


def _build_workspace_or_exit(config: StagecraftSettings, settings_path: Path) -> Workspace:
    from stagecraft.workspace import Workspace

    try:
        workspace, _ = Workspace.from_settings(config, base_dir=settings_path.parent)
    except FileNotFoundError as e:
        _format_validation_error(title="Catalog Not Found", message=str(e))
        raise typer.Exit(1) from None
    except CatalogError as e:
        # Includes UnknownStageKindError
        _format_validation_error(
            title="Stage Catalog Error",
            message=str(e),
            hint="Run 'stagecraft catalog' to list the available stage kinds.",
        )
        raise typer.Exit(1) from None
    except GraphValidationError as e:
        _format_validation_error(
            title="Pipeline Graph Error",
            message=str(e),
            hint="Sources accept no input, destinations have no output and each node takes one input.",
        )
        raise typer.Exit(1) from None
    return workspace


@app.command()
def catalog(
    catalog_file: Path | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Stage catalog YAML to list instead of the built-in catalog.",
    ),
) -> None:
    """List the stage definitions that can be added to a pipeline."""
    from stagecraft.core.catalog import load_catalog

    try:
        stages = load_catalog(catalog_file)
    except (CatalogError, FileNotFoundError) as e:
        _format_validation_error(title="Stage Catalog Error", message=str(e))
        raise typer.Exit(1) from None

    for section in ("sources", "transforms", "destinations"):
        definitions = stages.section(section)
        typer.echo(f"\n{section.upper()}:")
        if not definitions:
            typer.echo("  (none available)")
            continue
        for definition in definitions:
            typer.echo(f"  {definition.kind:16} - {definition.label}: {definition.description}")
            for key, value in definition.config.items():
                typer.echo(f"      {key} = {value!r}")

    typer.echo()


@app.command()
def validate(
    ctx: typer.Context,
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Assemble the pipeline and check it can be ordered, without running it."""
    from stagecraft.engine.ordering import topological_order

    config, settings_path = _load_settings_or_exit(settings)
    _apply_logging_settings(ctx, config)
    workspace = _build_workspace_or_exit(config, settings_path)

    order = topological_order(workspace.store)
    error = order.cycle_error()
    if error is not None:
        _format_validation_error(
            title="Pipeline Graph Error",
            message=str(error),
            hint="Remove one connection from each cycle.",
        )
        raise typer.Exit(1)

    typer.echo("✅ Pipeline configuration valid!")
    typer.echo(f"  Graph: {workspace.store.node_count} nodes, {workspace.store.edge_count} edges")
    typer.echo("  Execution order:")
    for node_id in order.nodes:
        node = workspace.get_node(node_id)
        typer.echo(f"    {node.label} ({node.stage_kind})")
    outline = workspace.outline()
    if outline:
        typer.echo("  Lineage:")
        for line in outline:
            typer.echo(f"    {line}")


def _result_as_dict(workspace: Workspace, result: RunResult) -> dict[str, Any]:
    return {
        "status": str(result.status),
        "order": list(result.order),
        "skipped": list(result.skipped),
        "trace": [
            {
                "timestamp": entry.timestamp.isoformat(),
                "node_id": entry.node_id,
                "stage_kind": entry.stage_kind,
                "message": entry.message,
            }
            for entry in result.trace
        ],
        "final_rows": result.last_output,
        "error": str(result.error) if result.error is not None else None,
        "outline": workspace.outline(),
    }


@app.command()
def run(
    ctx: typer.Context,
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Run a preview of the pipeline over the sample dataset."""
    config, settings_path = _load_settings_or_exit(settings)
    _apply_logging_settings(ctx, config)
    workspace = _build_workspace_or_exit(config, settings_path)

    try:
        result = workspace.run_preview()
    except CycleDetectedError as e:
        if output_format == "json":
            typer.echo(json.dumps({"status": "failed", "error": str(e)}), err=True)
        else:
            _format_validation_error(
                title="Pipeline Graph Error",
                message=str(e),
                hint="Remove one connection from each cycle, or set execution.fail_on_cycle: false.",
            )
        raise typer.Exit(1) from None

    if output_format == "json":
        typer.echo(json.dumps(_result_as_dict(workspace, result), default=str))
        return

    typer.echo("Run log:")
    for line in workspace.trace_log.render():
        typer.echo(f"  {line}")
    if result.error is not None:
        typer.secho(f"Warning: {result.error}", fg=typer.colors.YELLOW, err=True)

    rows = result.last_output
    typer.echo(f"\nFinal rows ({len(rows)}):")
    for row in rows:
        typer.echo(f"  {json.dumps(row, default=str)}")
    typer.echo(f"\nStatus: {result.status}")


if __name__ == "__main__":
    app()
