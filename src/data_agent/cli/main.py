"""
Data agent CLI — `data-agent` command.

Commands:
  data-agent run               Connect to the host and serve requests
  data-agent resolve <prompt>  One-shot local prompt resolution
  data-agent schema            Print the rendered schema documentation
  data-agent limit <query>     Print the row-limited form of a query
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from data_agent import __version__
from data_agent.config import get_settings
from data_agent.safety import ensure_query_limit
from data_agent.schema import load_schema, render_concise, render_documentation

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


@click.group()
@click.version_option(__version__)
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def main(log_level):
    """Data agent — resolve prompts into data visualizations."""
    _configure_logging(log_level or get_settings().LOG_LEVEL)


@main.command("schema")
@click.option("--concise", is_flag=True, help="Column names and types only")
@click.option("--file", "path", default=None, help="Schema JSON file (default: bundled schema)")
def schema_cmd(concise: bool, path):
    """Print the schema documentation given to the completion model."""
    schema = load_schema(path or get_settings().SCHEMA_FILE or None)
    text = render_concise(schema) if concise else render_documentation(schema)
    click.echo(text)


@main.command("limit")
@click.argument("query")
@click.option("--rows", type=int, default=None, help="Row limit (default: DEFAULT_ROW_LIMIT)")
def limit_cmd(query: str, rows):
    """Print QUERY with a row limit added when it is a read without one."""
    click.echo(ensure_query_limit(query, rows or get_settings().DEFAULT_ROW_LIMIT))


# Register subcommands from separate modules
from data_agent.cli.resolve import resolve_cmd
from data_agent.cli.run import run_cmd

main.add_command(run_cmd)
main.add_command(resolve_cmd)


if __name__ == "__main__":
    main()
