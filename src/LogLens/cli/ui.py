"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to the command runner.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from LogLens.cli.commands import DocumentCommand, IndicesCommand, QueryCommand, SearchCommand
from LogLens.cli.runner import CommandRunner
from LogLens.config import load_config, load_config_with_defaults
from LogLens.renderers import OUTPUT_FORMATS

DEFAULT_CONFIG = Path("config/default.yml")


def _split_fields(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@click.group(help="LogLens: query a search backend and browse results in the terminal.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG,
    show_default=True,
    help="Path to YAML config file (merged over the default config when both exist).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.

    Args:
        ctx: Click context.
        config_path: Path to YAML config file.
    """
    load_dotenv()

    if config_path != DEFAULT_CONFIG and DEFAULT_CONFIG.exists():
        cfg = load_config_with_defaults(config_path, DEFAULT_CONFIG)
    else:
        cfg = load_config(config_path)
    ctx.obj = cfg


@cli.command("search")
@click.option("--filter", "-f", "filters", multiple=True, help="Filter expression, e.g. level=error or code>=500.")
@click.option("--timeframe", "-t", default=None, help="Relative timeframe: today, week, month, quarter, year, 12h, 3d, 2w.")
@click.option("--index", "-i", default=None, help="Index name or pattern.")
@click.option("--size", "-n", type=int, default=None, help="Number of results to fetch.")
@click.option("--grep", "-g", default=None, help="Local case-insensitive filter over the shown columns.")
@click.option("--fields", default=None, help="Comma-separated columns to show.")
@click.option("--page", "-p", type=click.IntRange(min=1), default=1, show_default=True, help="Page to show.")
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="console", show_default=True)
@click.pass_context
def search_cmd(
    ctx: click.Context,
    filters: tuple[str, ...],
    timeframe: str | None,
    index: str | None,
    size: int | None,
    grep: str | None,
    fields: str | None,
    page: int,
    output_format: str,
) -> None:
    """Fetch matching documents and print one page.

    Raises:
        click.Abort: When the search fails.
    """
    runner = CommandRunner(ctx.obj)
    runner.run_with_service(
        ctx.command.name,
        lambda service, writer: SearchCommand(
            service=service,
            output_writer=writer,
            filters=filters,
            timeframe=timeframe,
            index=index,
            size=size,
            grep=grep,
            fields=_split_fields(fields),
            page=page,
        ),
        output_format=output_format,
    )


@cli.command("query")
@click.option("--filter", "-f", "filters", multiple=True, help="Filter expression.")
@click.option("--timeframe", "-t", default=None, help="Relative timeframe.")
@click.option("--size", "-n", type=int, default=None, help="Number of results.")
@click.pass_context
def query_cmd(ctx: click.Context, filters: tuple[str, ...], timeframe: str | None, size: int | None) -> None:
    """Print the compiled request body as JSON without sending it."""
    runner = CommandRunner(ctx.obj)
    runner.run(
        ctx.command.name,
        lambda: QueryCommand(config=ctx.obj, filters=filters, timeframe=timeframe, size=size),
    )


@cli.command("indices")
@click.argument("pattern", required=False, default="*")
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="console", show_default=True)
@click.pass_context
def indices_cmd(ctx: click.Context, pattern: str, output_format: str) -> None:
    """List index names matching PATTERN."""
    runner = CommandRunner(ctx.obj)
    runner.run_with_service(
        ctx.command.name,
        lambda service, writer: IndicesCommand(service=service, output_writer=writer, pattern=pattern),
        output_format=output_format,
    )


@cli.command("doc")
@click.argument("index")
@click.argument("doc_id")
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="json", show_default=True)
@click.pass_context
def doc_cmd(ctx: click.Context, index: str, doc_id: str, output_format: str) -> None:
    """Print one full document."""
    runner = CommandRunner(ctx.obj)
    runner.run_with_service(
        ctx.command.name,
        lambda service, writer: DocumentCommand(
            service=service,
            output_writer=writer,
            index=index,
            doc_id=doc_id,
        ),
        output_format=output_format,
    )
