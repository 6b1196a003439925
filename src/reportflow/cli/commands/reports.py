"""Report store commands - list, show, delete, import and export stored reports."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table as RichTable

from reportflow.cli.common import (
    DatabaseOption,
    JsonFlag,
    OutputFileOption,
    VerboseOption,
    console,
    emit_json,
    get_store_engine,
    setup_logging,
)
from reportflow.storage import ReportRepository, session_scope

app = typer.Typer(
    name="reports",
    help="Manage stored report definitions.",
    no_args_is_help=True,
)


@app.command("list")
def list_reports(
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Match name, description, tags or entity"),
    ] = None,
    entity: Annotated[
        str | None,
        typer.Option("--entity", "-e", help="Only reports on this primary entity"),
    ] = None,
    tag: Annotated[
        str | None,
        typer.Option("--tag", "-t", help="Only reports with this tag"),
    ] = None,
    db: DatabaseOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
) -> None:
    """List stored reports, most recently updated first.

    Examples:

        reportflow reports list

        reportflow reports list --tag hr --json
    """
    setup_logging(verbose)
    engine = get_store_engine(db)

    with session_scope(engine) as session:
        repo = ReportRepository(session)
        if search is not None:
            items = repo.search(search)
        elif entity is not None:
            items = repo.by_entity(entity)
        elif tag is not None:
            items = repo.by_tag(tag)
        else:
            items = repo.list_items()

    if json_output:
        emit_json([item.model_dump(mode="json", by_alias=True) for item in items], None)
        return

    if not items:
        console.print("[yellow]No reports found[/yellow]")
        return

    table = RichTable(title=f"Reports ({len(items)})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Entity")
    table.add_column("Version", justify="right")
    table.add_column("Updated")
    table.add_column("Tags", style="dim")
    for item in items:
        table.add_row(
            item.id,
            item.name,
            item.primary_entity,
            str(item.report_version),
            item.updated_at,
            ", ".join(item.tags),
        )
    console.print(table)


@app.command()
def show(
    report_id: Annotated[str, typer.Argument(help="Report id")],
    db: DatabaseOption = None,
    output: OutputFileOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Print a stored report definition as JSON."""
    setup_logging(verbose)
    engine = get_store_engine(db)

    with session_scope(engine) as session:
        definition = ReportRepository(session).get(report_id)

    if definition is None:
        console.print(f"[red]Report {report_id} not found[/red]")
        raise typer.Exit(1)
    emit_json(definition.to_document(), output)


@app.command()
def delete(
    report_id: Annotated[str, typer.Argument(help="Report id")],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Skip confirmation prompt",
        ),
    ] = False,
    db: DatabaseOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Delete a stored report."""
    setup_logging(verbose)

    if not force:
        confirm = typer.confirm(f"Delete report {report_id}?")
        if not confirm:
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    engine = get_store_engine(db)
    with session_scope(engine) as session:
        deleted = ReportRepository(session).delete(report_id)

    if not deleted:
        console.print(f"[red]Report {report_id} not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {report_id}[/green]")


@app.command("import")
def import_reports(
    import_file: Annotated[
        Path,
        typer.Argument(
            help="Export file (JSON) to import",
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    db: DatabaseOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Import reports from an export file.

    Reports whose id is already stored are imported under a new id.
    Exits with code 1 when nothing could be imported.
    """
    setup_logging(verbose)

    try:
        text = import_file.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]{import_file}: Cannot read file: {e}[/red]")
        raise typer.Exit(1) from e

    engine = get_store_engine(db)
    with session_scope(engine) as session:
        result = ReportRepository(session).import_reports(text)

    for report_id in result.imported:
        console.print(f"[green]Imported[/green] {report_id}")
    for error in result.errors:
        console.print(f"[red]error[/red] {error}")
    console.print(f"{result.count} imported, {len(result.errors)} errors")

    if result.count == 0 and result.errors:
        raise typer.Exit(1)


@app.command("export")
def export_reports(
    report_ids: Annotated[
        list[str] | None,
        typer.Option("--id", help="Report id to export (repeatable, default: all)"),
    ] = None,
    output: OutputFileOption = None,
    db: DatabaseOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Export stored reports to an export file."""
    setup_logging(verbose)
    engine = get_store_engine(db)

    with session_scope(engine) as session:
        export = ReportRepository(session).export_reports(report_ids or None)

    emit_json(export.model_dump(mode="json", by_alias=True, exclude_none=True), output)
