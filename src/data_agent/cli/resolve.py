"""CLI: data-agent resolve <prompt> [--catalog FILE] [--json]"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from data_agent.catalog import Catalog
from data_agent.config import get_settings
from data_agent.errors import DataAgentError
from data_agent.llm.completion import CompletionClient
from data_agent.resolver.models import ResolutionResult
from data_agent.resolver.pipeline import IntentResolver
from data_agent.schema import load_schema, render_documentation

console = Console()


def _print_result(result: ResolutionResult) -> None:
    table = Table(show_header=False, box=None)
    table.add_row("[bold]method[/bold]", result.method)
    if result.classification is not None:
        table.add_row("[bold]question[/bold]", result.classification.question_type.value)
    if result.confidence is not None:
        table.add_row("[bold]confidence[/bold]", str(result.confidence))
    table.add_row("[bold]reasoning[/bold]", result.reasoning)
    console.print(table)

    artifact = result.artifact
    if artifact is None:
        console.print("[yellow]No component.[/yellow]")
        return
    console.print(f"\n[green]{artifact.name}[/green] ({artifact.type}) [dim]{artifact.id}[/dim]")
    children = artifact.props.config.components if artifact.is_container else [artifact]
    for child in children:
        if child.props.query:
            console.print(Syntax(child.props.query, "sql", word_wrap=True))


@click.command("resolve")
@click.argument("prompt")
@click.option("--catalog", "catalog_file", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON file with a list of components to match against")
@click.option("--json", "as_json", is_flag=True, help="Print the response payload as JSON")
def resolve_cmd(prompt: str, catalog_file: Optional[str], as_json: bool):
    """Resolve PROMPT into a component without connecting to the host."""
    settings = get_settings()

    catalog = Catalog()
    if catalog_file:
        with open(catalog_file, encoding="utf-8") as f:
            data = json.load(f)
        catalog.replace(data.get("components", []) if isinstance(data, dict) else data)

    async def _resolve():
        completion = CompletionClient(
            api_key=settings.GROQ_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            model=settings.COMPLETION_MODEL,
        )
        resolver = IntentResolver(
            completion,
            render_documentation(load_schema(settings.SCHEMA_FILE or None)),
            matching_method="completion",
            row_limit=settings.DEFAULT_ROW_LIMIT,
            model=settings.COMPLETION_MODEL,
        )
        try:
            with console.status("Resolving..."):
                return await resolver.resolve(prompt, catalog.current)
        finally:
            await completion.close()

    try:
        result = asyncio.run(_resolve())
    except DataAgentError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(result.to_payload(), indent=2))
    else:
        _print_result(result)
