"""Shared CLI utilities and constants."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from sqlalchemy.engine import Engine

from reportflow.core.config import get_settings
from reportflow.core.logging import configure_logging
from reportflow.graphs.validation import ValidationResult

# Load .env file from current directory
load_dotenv()

# Shared console instance
console = Console()

# Common type aliases for typer options
InputFileArg = Annotated[
    Path,
    typer.Argument(
        help="Input JSON file",
        dir_okay=False,
        file_okay=True,
        resolve_path=True,
    ),
]

OutputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Write the result to this file instead of stdout",
        dir_okay=False,
        file_okay=True,
        resolve_path=True,
    ),
]

DatabaseOption = Annotated[
    str | None,
    typer.Option(
        "--db",
        help="Report store database URL (default: REPORTFLOW_DATABASE_URL)",
    ),
]

JsonFlag = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON for scripting",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]


def setup_logging(verbosity: int = 0, log_format: str | None = None) -> None:
    """Configure structured logging based on verbosity level.

    Without ``-v`` the level comes from ``REPORTFLOW_LOG_LEVEL``.

    Args:
        verbosity: 0=settings level, 1=INFO, 2+=DEBUG
        log_format: "console" for development, "json" for production/cloud.
            Defaults to ``REPORTFLOW_LOG_FORMAT``
    """
    settings = get_settings()
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity >= 1:
        level = "INFO"
    else:
        level = settings.log_level

    log_format = log_format or settings.log_format
    configure_logging(
        log_level=level,
        log_format=log_format,
        show_timestamps=verbosity >= 1,
        color=log_format == "console",
    )


def emit_json(payload: Any, output: Path | None) -> None:
    """Write a JSON payload to ``output``, or to stdout when None."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]Wrote {output}[/green]")


def print_validation(result: ValidationResult) -> None:
    """Print errors and warnings of a validation run."""
    for error in result.errors:
        console.print(f"[red]error[/red]   {error}")
    for warning in result.warnings:
        console.print(f"[yellow]warning[/yellow] {warning}")

    if result.is_valid:
        console.print("[green]Graph is valid[/green]")
    else:
        console.print(f"[red]Graph is invalid ({len(result.errors)} errors)[/red]")


def get_store_engine(db: str | None) -> Engine:
    """Create an engine for the report store and make sure the schema exists."""
    from reportflow.storage import create_store_engine, init_database

    engine = create_store_engine(db)
    init_database(engine)
    return engine
