"""
CLI for dessist.

Reads an SSIS package and writes an equivalent Python program into an
output folder.
"""

import logging
import sys
from pathlib import Path

import click

from dessist import __version__
from dessist.config import ContentPrecedence, GeneratorOptions, SqlCompatibility
from dessist.workflow import ConversionAgent, EventKind, WorkflowEvent

_EVENT_COLORS = {
    EventKind.WARNING: "yellow",
    EventKind.ERROR: "red",
}


def _echo_event(event: WorkflowEvent) -> None:
    if event.kind in _EVENT_COLORS:
        click.secho(event.message, fg=_EVENT_COLORS[event.kind], err=True)


@click.command(name="dessist")
@click.version_option(version=__version__, prog_name="dessist")
@click.help_option("--help", "-h")
@click.argument("package", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_folder", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--sql-mode",
    type=click.Choice(["2008", "2005"]),
    default="2008",
    show_default=True,
    help="SQL Server compatibility mode for the injected helpers.",
)
@click.option(
    "--smo/--no-smo",
    default=True,
    show_default=True,
    help="Run SQL through the batch-aware helper instead of the generic placeholder.",
)
@click.option("--first-content", is_flag=True, help="Keep the first text segment of an element, not the last.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    package: Path,
    output_folder: Path,
    sql_mode: str,
    smo: bool,
    first_content: bool,
    verbose: bool,
) -> None:
    """DESSIST - Read an SSIS package and produce an equivalent Python program."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s — %(message)s",
    )

    options = GeneratorOptions(
        sql_mode=SqlCompatibility(f"SQL{sql_mode}"),
        use_smo=smo,
        content_precedence=ContentPrecedence.FIRST if first_content else ContentPrecedence.LAST,
    )
    agent = ConversionAgent(options)
    agent.subscribe(_echo_event)

    if not agent.run(package, output_folder):
        click.secho(f"✗ {agent.state.error_message}", fg="red", err=True)
        sys.exit(1)

    emission = agent.state.emission
    click.echo(
        click.style(f"✓ Wrote {agent.state.output_path}", fg="green")
        + f" (entry point {emission.entry_point}(), "
        f"{emission.untranslated_count} untranslated constructs)"
    )


if __name__ == "__main__":
    main()
