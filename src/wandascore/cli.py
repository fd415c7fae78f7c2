"""Command-line interface for wandascore."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from wandascore import __version__
from wandascore.config import Config
from wandascore.container import DependencyContainer
from wandascore.exceptions import GenerationFailedError, PageNotFoundError
from wandascore.models import ScoreReport
from wandascore.observability.metrics import start_metrics_server
from wandascore.web.main import create_app

console = Console()


def _container(ctx: click.Context) -> DependencyContainer:
    return DependencyContainer(ctx.obj["config_path"])


def render_report(report: ScoreReport) -> Table:
    table = Table(title=f"{report.page_title}: {report.overall_score}/100")
    table.add_column("Factor", style="cyan")
    table.add_column("Score", style="magenta", justify="right")
    table.add_column("Details")
    for name, factor in report.factors.items():
        table.add_row(name, str(factor.score), factor.details)
    return table


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str]) -> None:
    """WandaScore - LLM-assisted content quality scores for wiki pages."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.argument("page")
@click.option("--refresh", is_flag=True, help="Ignore the cached score and recompute")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def score(ctx: click.Context, page: str, refresh: bool, as_json: bool) -> None:
    """Score a single PAGE."""

    async def run() -> ScoreReport:
        async with _container(ctx).lifecycle(watch_config=False) as container:
            service = await container.get_service()
            return await service.get_score(page, force_refresh=refresh)

    try:
        report = asyncio.run(run())
    except PageNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    except GenerationFailedError as e:
        console.print(f"[red]Score generation failed: {e}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        console.print(render_report(report))


@cli.command()
@click.argument("pages", nargs=-1, required=True)
@click.option("--workers", type=int, default=None, help="Override the number of job workers")
@click.pass_context
def recompute(ctx: click.Context, pages: tuple[str, ...], workers: Optional[int]) -> None:
    """Recompute and cache the scores of PAGES in the background worker pool."""

    async def run() -> dict:
        async with _container(ctx).lifecycle(watch_config=False) as container:
            if workers is not None and container.config is not None:
                container.config.jobs.workers = workers
            queue = await container.get_job_queue()
            for page in pages:
                await queue.enqueue(page)
            await queue.join()
            return queue.stats()

    stats = asyncio.run(run())
    console.print(f"[green]Succeeded: {stats['succeeded']}[/green]  [red]Failed: {stats['failed']}[/red]")
    if stats["failed"]:
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Bind host (defaults to the configured web host)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to the configured web port)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP API."""
    config_path: Optional[Path] = ctx.obj["config_path"]
    config = Config.from_yaml(config_path) if config_path else Config()
    if start_metrics_server(config.monitoring):
        console.print(f"[blue]Prometheus metrics on port {config.monitoring.prometheus_port}[/blue]")

    container = DependencyContainer(config_path, config=config)
    uvicorn.run(create_app(container), host=host or config.web.host, port=port or config.web.port)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
