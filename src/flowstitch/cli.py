# src/flowstitch/cli.py
"""flowstitch Command Line Interface.

Every command runs the whole load -> merge -> validate -> render pipeline
and prints the complete diagnostic list before exiting. Exit status is 0
for a valid workflow and 1 on a load/merge failure or any error-severity
diagnostic. Warnings alone never fail a command.

stdout carries the command's product (artifact, report or diagram); panels,
diagnostics accompanying a product and log lines go to stderr.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from flowstitch import __version__
from flowstitch.contracts import (
    DuplicateSubsectionError,
    InternalInvariantViolation,
    InvalidBindingError,
    Severity,
    SubsectionLoadError,
    UnboundPortsError,
    ValidationReport,
)
from flowstitch.core.artifacts import diagnostics_report, dumps, merged_artifact, write_json
from flowstitch.core.config import FlowstitchSettings, ValidationSettings, load_settings
from flowstitch.core.logging import configure_logging
from flowstitch.engine.pipeline import PipelineResult, run_pipeline

__all__ = [
    "app",
]


class OutputFormat(StrEnum):
    CONSOLE = "console"
    JSON = "json"


app = typer.Typer(
    name="flowstitch",
    help="Compose workflow subsections, validate the merged graph and draw it.",
    no_args_is_help=True,
)

_SEVERITY_COLORS = {
    Severity.ERROR: typer.colors.RED,
    Severity.WARNING: typer.colors.YELLOW,
}

# Column where edge refs line up under a diagnostic message
_DETAIL_INDENT = 33


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"flowstitch version {__version__}")
        raise typer.Exit()


def _apply_env_file(env_file: Path | None) -> bool:
    """Populate os.environ from a .env file without overriding existing variables.

    With no explicit path the nearest .env from the working directory upward
    is used. Returns whether a file was loaded.

    Raises:
        typer.Exit: If an explicit env_file does not exist
    """
    from dotenv import find_dotenv, load_dotenv

    if env_file is None:
        found = find_dotenv(usecwd=True)
        return bool(found) and load_dotenv(found, override=False)
    if not env_file.exists():
        typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return load_dotenv(env_file, override=False)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=_show_version,
        is_eager=True,
        help="Print the flowstitch version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Do not read a .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Read FLOWSTITCH_* overrides from this .env file instead of searching for one.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log at DEBUG level (overrides the settings file).",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit log lines as JSON objects on stderr.",
    ),
) -> None:
    """Compose workflow subsections, validate the merged graph and draw it."""
    # Configure before any subcommand runs; _resolve_settings may refine it
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}

    if no_dotenv:
        if env_file is not None:
            typer.secho("Warning: --env-file has no effect with --no-dotenv.", fg=typer.colors.YELLOW, err=True)
        return
    _apply_env_file(env_file)


def _error_panel(title: str, message: str, *, hint: str | None = None, details: Sequence[str] = ()) -> None:
    """Print a red panel on stderr: message, optional bullet details, optional hint."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    body = Text(message, style="white")
    if details:
        body.append("\n\n")
        for detail in details:
            body.append(f"  • {detail}\n", style="dim")
    if hint:
        body.append("\nHint: ", style="yellow bold")
        body.append(hint, style="yellow")

    Console(stderr=True).print(Panel(body, title=f"[red bold]❌ {title}[/]", border_style="red", padding=(0, 1)))


def _resolve_settings(ctx: typer.Context, settings_path: Path | None, strict_orphans: bool) -> FlowstitchSettings:
    """Load settings, apply --strict-orphans and re-apply logging from the file."""
    path = settings_path.expanduser() if settings_path is not None else None
    try:
        settings = load_settings(path)
    except (YamlParserError, YamlScannerError) as e:
        _error_panel(
            "YAML Syntax Error",
            f"Cannot parse settings file {path}",
            details=[str(e.problem)] if getattr(e, "problem", None) else (),
            hint="Look for unclosed brackets or inconsistent indentation.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _error_panel("File Not Found", f"Settings file does not exist: {path}")
        raise typer.Exit(1) from None
    except ValidationError as e:
        _error_panel(
            "Configuration Validation Failed",
            f"Invalid settings in {path}" if path is not None else "Invalid settings from environment",
            details=[f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()],
            hint="Known sections are validation, layout and logging.",
        )
        raise typer.Exit(1) from None

    if strict_orphans:
        settings = settings.model_copy(update={"validation": ValidationSettings(orphan_severity=Severity.ERROR)})

    flags = ctx.obj or {}
    if not flags.get("verbose") and (settings.logging.level != "WARNING" or settings.logging.json_output):
        configure_logging(
            json_output=flags.get("json_logs", False) or settings.logging.json_output,
            level=settings.logging.level,
        )
    return settings


@contextmanager
def _fatal_errors() -> Iterator[None]:
    """Turn load and merge failures into an error panel and exit status 1."""
    try:
        yield
    except SubsectionLoadError as e:
        _error_panel("Load Failed", str(e), details=e.details, hint="Check node types, connection records and boundary ports.")
        raise typer.Exit(1) from None
    except InvalidBindingError as e:
        _error_panel(
            "Invalid Binding",
            str(e),
            hint="Bindings must name declared ports, and each port can be bound only once.",
        )
        raise typer.Exit(1) from None
    except UnboundPortsError as e:
        _error_panel(
            "Unbound Ports",
            f"{len(e.ports)} boundary port(s) were not bound by any binding",
            details=[f"{subsection} {direction.value} '{port}'" for subsection, direction, port in e.ports],
            hint="Add a binding for every import and export port.",
        )
        raise typer.Exit(1) from None
    except DuplicateSubsectionError as e:
        _error_panel("Merge Failed", str(e), hint="Subsection names must be unique within one merge.")
        raise typer.Exit(1) from None
    except InternalInvariantViolation as e:
        _error_panel("Internal Error", str(e))
        raise typer.Exit(1) from None


def _run(subsections: Path, bindings: Path, settings: FlowstitchSettings) -> PipelineResult:
    with _fatal_errors():
        result = run_pipeline(subsections.expanduser(), bindings.expanduser(), settings)
    return result


def _echo_diagnostics(report: ValidationReport, *, err: bool) -> None:
    """Print every diagnostic, then a one-line verdict."""
    for diagnostic in report.diagnostics:
        label = typer.style(f"{diagnostic.severity.value.upper():<7}", fg=_SEVERITY_COLORS[diagnostic.severity], bold=True)
        typer.echo(f"{label} {diagnostic.code.value:<24} {diagnostic.message}", err=err)
        for ref in diagnostic.edge_refs:
            typer.echo(f"{'':<{_DETAIL_INDENT}}edge {ref}", err=err)

    warnings = len(report.warnings)
    if report.valid:
        typer.echo(f"✅ Workflow valid ({warnings} warning(s))", err=err)
    else:
        typer.echo(f"❌ Workflow invalid: {len(report.errors)} error(s), {warnings} warning(s)", err=err)


def _exit_for(report: ValidationReport) -> None:
    if not report.valid:
        raise typer.Exit(1)


_SUBSECTIONS_ARGUMENT = typer.Argument(
    ...,
    help="Subsection set: a directory of artifacts, a manifest file, or one artifact file.",
)
_BINDINGS_ARGUMENT = typer.Argument(
    ...,
    help="Binding list file (YAML or JSON).",
)
_SETTINGS_OPTION = typer.Option(
    None,
    "--settings",
    "-s",
    help="Settings YAML file (FLOWSTITCH_* environment variables override it).",
)
_STRICT_ORPHANS_OPTION = typer.Option(
    False,
    "--strict-orphans",
    help="Report unreachable nodes as errors instead of warnings.",
)


@app.command()
def merge(
    ctx: typer.Context,
    subsections: Path = _SUBSECTIONS_ARGUMENT,
    bindings: Path = _BINDINGS_ARGUMENT,
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the merged artifact to this file instead of stdout.",
    ),
    settings: Path | None = _SETTINGS_OPTION,
    strict_orphans: bool = _STRICT_ORPHANS_OPTION,
) -> None:
    """Merge subsections into one workflow artifact."""
    config = _resolve_settings(ctx, settings, strict_orphans)
    result = _run(subsections, bindings, config)

    artifact = merged_artifact(result.merged)
    if output is not None:
        write_json(artifact, output.expanduser())
        typer.echo(f"Merged artifact written to {output}", err=True)
    else:
        typer.echo(dumps(artifact), nl=False)

    _echo_diagnostics(result.report, err=True)
    _exit_for(result.report)


@app.command()
def validate(
    ctx: typer.Context,
    subsections: Path = _SUBSECTIONS_ARGUMENT,
    bindings: Path = _BINDINGS_ARGUMENT,
    output_format: OutputFormat = typer.Option(
        OutputFormat.CONSOLE,
        "--format",
        "-f",
        help="'console' for a readable listing, 'json' for the diagnostics report.",
    ),
    settings: Path | None = _SETTINGS_OPTION,
    strict_orphans: bool = _STRICT_ORPHANS_OPTION,
) -> None:
    """Validate the merged workflow and print every diagnostic."""
    config = _resolve_settings(ctx, settings, strict_orphans)
    result = _run(subsections, bindings, config)

    if output_format == OutputFormat.JSON:
        typer.echo(dumps(diagnostics_report(result.report)), nl=False)
    else:
        graph = result.merged.graph
        typer.echo(f"Merged {len(result.merged.subsections)} subsection(s): {graph.node_count} nodes, {graph.edge_count} edges")
        _echo_diagnostics(result.report, err=False)
    _exit_for(result.report)


@app.command()
def diagram(
    ctx: typer.Context,
    subsections: Path = _SUBSECTIONS_ARGUMENT,
    bindings: Path = _BINDINGS_ARGUMENT,
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the diagram to this file instead of stdout.",
    ),
    settings: Path | None = _SETTINGS_OPTION,
    strict_orphans: bool = _STRICT_ORPHANS_OPTION,
) -> None:
    """Render the merged workflow as an ASCII diagram."""
    config = _resolve_settings(ctx, settings, strict_orphans)
    result = _run(subsections, bindings, config)

    if output is not None:
        target = output.expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.layout.text, encoding="utf-8")
        typer.echo(f"Diagram written to {output}", err=True)
    else:
        typer.echo(result.layout.text, nl=False)

    _echo_diagnostics(result.report, err=True)
    _exit_for(result.report)


if __name__ == "__main__":
    app()
