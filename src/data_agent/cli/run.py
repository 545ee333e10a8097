"""CLI: data-agent run"""

import asyncio

import click
from rich.console import Console

from data_agent.config import get_settings
from data_agent.errors import DataAgentError

console = Console()


@click.command("run")
@click.option("--url", default=None, help="Override WEBSOCKET_URL")
@click.option("--project-id", default=None, help="Override PROJECT_ID")
def run_cmd(url, project_id):
    """Connect to the orchestration host and serve until interrupted."""
    from data_agent.agent import DataAgent

    overrides = {}
    if url:
        overrides["WEBSOCKET_URL"] = url
    if project_id:
        overrides["PROJECT_ID"] = project_id
    settings = get_settings().model_copy(update=overrides)

    async def _serve():
        agent = DataAgent.from_settings(settings)
        try:
            await agent.run()
        finally:
            await agent.stop()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    except DataAgentError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
