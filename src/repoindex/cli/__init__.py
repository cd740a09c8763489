"""
CLI for repoindex.

Provides command-line interface for running the index pipeline and
selecting repositories from metadata.
"""

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from repoindex.core.config import load_config
from repoindex.core.logging_setup import configure_logging
from repoindex.core.repo_metadata import (
    RepoFilter,
    expand_metadata_locations,
    load_repo_infos,
)
from repoindex.core.repository_unit import load_units
from repoindex.services import create_services

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="repoindex",
    help="Repository index publisher - stage and publish per-repository code indices",
    add_completion=False,
)


@app.command()
def run(
    units_file: Path = typer.Argument(..., help="JSON-lines file of extracted repository units"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of parallel worker loops"
    ),
):
    """Write and publish the indices of every unit in UNITS_FILE."""
    if not units_file.is_file():
        console.print(f"[bold red]Error:[/bold red] Units file not found: {units_file}")
        raise typer.Exit(1)

    load_dotenv()

    try:
        cfg = load_config(config_path)
        configure_logging(cfg.logging)
        services = create_services(config=cfg)

        # Use config workers if not overridden by CLI
        actual_workers = workers if workers is not None else cfg.pipeline.num_workers

        with console.status(f"Processing units with {actual_workers} workers..."):
            result = services.pipeline.run(load_units(units_file), num_workers=actual_workers)

        summary = Table.grid(padding=1)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Total Units:", str(result.total_units))
        summary.add_row("Published:", str(result.completed_units))
        summary.add_row("Skipped:", str(result.skipped_units))
        if result.failed_units:
            summary.add_row("Failed:", f"[red]{result.failed_units}[/red]")
        if result.publish_failures:
            summary.add_row(
                "Publish Failures:", f"[yellow]{len(result.publish_failures)}[/yellow]"
            )
        summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")

        console.print(
            Panel(
                summary,
                title="[bold green]Pipeline Complete[/bold green]",
                border_style="green",
                expand=False,
            )
        )

        if result.publish_failures:
            console.print("\n[bold yellow]Publish Failures:[/bold yellow]")
            for failure in result.publish_failures[:5]:
                console.print(f"  - {failure.unit_key} ({failure.index_kind.value}): {failure.error}")
            if len(result.publish_failures) > 5:
                console.print(f"  ... and {len(result.publish_failures) - 5} more")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def select(
    metadata: Optional[str] = typer.Argument(
        None, help="Metadata chunks: 'a,b', a range '0-3000', or a single name"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows to display"),
):
    """List repositories from metadata that qualify for indexing."""
    load_dotenv()

    try:
        cfg = load_config(config_path)
        configure_logging(cfg.logging)
        locations = expand_metadata_locations(
            metadata, cfg.metadata.base_path, cfg.metadata.chunk_size
        )
        repo_filter = RepoFilter(
            min_stars=cfg.metadata.min_stars,
            max_size_kb=cfg.metadata.max_size_kb,
            languages=cfg.metadata.languages,
        )
        selected = list(repo_filter.select(load_repo_infos(locations)))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Indexable repositories ({len(selected)})")
    table.add_column("Id", justify="right")
    table.add_column("Repository", style="cyan")
    table.add_column("Language")
    table.add_column("Stars", justify="right")
    table.add_column("Size (KB)", justify="right")
    for info in selected[:limit]:
        table.add_row(
            str(info.repo_id),
            info.full_name,
            info.language or "",
            str(info.stargazers_count),
            str(info.size),
        )
    console.print(table)
    if len(selected) > limit:
        console.print(f"[dim]... and {len(selected) - limit} more[/dim]")


@app.command("show-config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .yml or .json)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print as JSON instead of YAML"),
):
    """Print the effective configuration."""
    load_dotenv()

    try:
        cfg = load_config(config_path)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    typer.echo(cfg.to_json() if as_json else cfg.to_yaml())


if __name__ == "__main__":
    app()
