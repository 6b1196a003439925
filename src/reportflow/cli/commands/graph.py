"""Graph commands - validate, compile and decompile report graphs."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from reportflow.cli.common import (
    InputFileArg,
    JsonFlag,
    OutputFileOption,
    VerboseOption,
    console,
    emit_json,
    print_validation,
    setup_logging,
)
from reportflow.core.errors import CompileError, DecompileError, DefinitionLoadError


def validate(
    graph_file: InputFileArg,
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
) -> None:
    """Check a graph for structural errors.

    Exits with code 1 when the graph has errors. Warnings never fail.

    Examples:

        reportflow validate graph.json

        reportflow validate graph.json --json
    """
    from reportflow.graphs import load_graph_file
    from reportflow.graphs import validate as validate_graph

    setup_logging(verbose)

    try:
        nodes, edges = load_graph_file(graph_file)
    except DefinitionLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    result = validate_graph(nodes, edges)
    if json_output:
        emit_json(result.to_dict(), None)
    else:
        print_validation(result)

    if not result.is_valid:
        raise typer.Exit(1)


def compile_report(
    graph_file: InputFileArg,
    prior: Annotated[
        Path | None,
        typer.Option(
            "--prior",
            "-p",
            help="Existing definition whose identity and settings are kept",
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    output: OutputFileOption = None,
    strict: Annotated[
        bool,
        typer.Option(
            "--strict",
            help="Refuse to compile a graph with structural errors",
        ),
    ] = False,
    verbose: VerboseOption = 0,
) -> None:
    """Compile a graph into a report definition.

    With --prior the result keeps the prior definition's id, owner, security,
    parameters and limits, and its version is one higher.

    Examples:

        reportflow compile graph.json -o report.json

        reportflow compile graph.json --prior report.json -o report.json
    """
    from reportflow.definitions import load_definition_file
    from reportflow.graphs import compile_graph, load_graph_file
    from reportflow.graphs import validate as validate_graph

    setup_logging(verbose)

    try:
        nodes, edges = load_graph_file(graph_file)
        prior_definition = load_definition_file(prior) if prior is not None else None
    except DefinitionLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if strict:
        result = validate_graph(nodes, edges)
        if not result.is_valid:
            print_validation(result)
            raise typer.Exit(1)

    try:
        definition = compile_graph(nodes, edges, prior=prior_definition)
    except CompileError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    emit_json(definition.to_document(), output)
    if output is not None:
        console.print(
            f"Report [bold]{definition.id}[/bold] version {definition.report_version} "
            f"({len(definition.graph.nodes)} nodes)"
        )
        for warning in definition.hints.warnings:
            console.print(f"[yellow]warning[/yellow] {warning}")


def decompile(
    definition_file: InputFileArg,
    output: OutputFileOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Rebuild the editable graph of a report definition.

    Examples:

        reportflow decompile report.json -o graph.json
    """
    from reportflow.definitions import load_definition_file
    from reportflow.graphs import decompile as decompile_definition
    from reportflow.graphs import graph_to_dict

    setup_logging(verbose)

    try:
        definition = load_definition_file(definition_file)
        graph = decompile_definition(definition)
    except (DefinitionLoadError, DecompileError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    emit_json(graph_to_dict(graph.nodes, graph.edges), output)
