"""Main CLI application entry point."""

from __future__ import annotations

import typer

from reportflow.cli.commands import definitions, graph, reports

app = typer.Typer(
    name="reportflow",
    help="Report builder - compile, validate and store report definitions.",
    no_args_is_help=True,
)

# Register commands
app.command()(graph.validate)
app.command("compile")(graph.compile_report)
app.command()(graph.decompile)
app.command()(definitions.new)
app.command()(definitions.sample)
app.add_typer(reports.app, name="reports")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
