"""Definition commands - create blank and sample report definitions."""

from __future__ import annotations

from typing import Annotated

import typer

from reportflow.cli.common import OutputFileOption, VerboseOption, emit_json, setup_logging


def new(
    name: Annotated[str, typer.Argument(help="Report name")],
    entity: Annotated[str, typer.Argument(help="Primary entity logical name")],
    output: OutputFileOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Create an empty report definition.

    Examples:

        reportflow new "Accounts by owner" account -o accounts.json
    """
    from reportflow.definitions import create_blank

    setup_logging(verbose)
    emit_json(create_blank(name, entity).to_document(), output)


def sample(
    output: OutputFileOption = None,
    verbose: VerboseOption = 0,
) -> None:
    """Write a copy of the multi-sheet sample report.

    Examples:

        reportflow sample -o sample.json
    """
    from reportflow.definitions import create_sample

    setup_logging(verbose)
    emit_json(create_sample().to_document(), output)
