"""
demoshelf CLI - Command Line Interface for the demo library

Provides commands for:
- Scanning demo folders
- Analyzing demos (full, player positions, heatmap)
- Checking rosters for banned players
- Showing rank, overall and per-map statistics
- Restoring and writing JSON backups
- Editing comments, statuses and sources
"""

import asyncio
import logging
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from demoshelf import __version__
from demoshelf.analysis.bans import BanReconciler
from demoshelf.analysis.stats import StatsAggregator
from demoshelf.core.config import (
    AccountContext,
    DemoShelfConfig,
    configure_logging,
    generate_default_config,
    load_config,
)
from demoshelf.core.constants import AnalysisMode, DemoSource
from demoshelf.core.models import Demo
from demoshelf.core.parser import DemoFileAnalyzer
from demoshelf.core.utils import format_duration, validate_steamid
from demoshelf.infra.cache import DemoCache
from demoshelf.integrations.steam import BanLookupError, SteamBanService
from demoshelf.pipeline.backup import BackupCodec
from demoshelf.pipeline.library import LibraryScanner
from demoshelf.pipeline.orchestrator import AnalysisOrchestrator

app = typer.Typer(
    name="demoshelf",
    help="Manage a library of CS demos: scan, analyze, check bans and track your stats",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Components wired from one configuration."""

    config: DemoShelfConfig
    cache: DemoCache
    orchestrator: AnalysisOrchestrator
    scanner: LibraryScanner
    stats: StatsAggregator


_state: dict = {"config_file": None, "verbose": False}


def _services() -> Services:
    config = load_config(_state["config_file"])
    configure_logging(config.logging, verbose=_state["verbose"])

    context = AccountContext.from_config(config)
    cache = DemoCache(Path(config.cache.directory) if config.cache.directory else None)
    analyzer = DemoFileAnalyzer(config.parser.position_sample_interval_ticks)
    orchestrator = AnalysisOrchestrator(analyzer, cache, context)
    logger.debug(f"Cache at {cache.cache_dir}, account {context.steam_id}")
    return Services(
        config=config,
        cache=cache,
        orchestrator=orchestrator,
        scanner=LibraryScanner(orchestrator, config.library.demo_extension),
        stats=StatsAggregator(cache, context),
    )


def _load_demo(services: Services, demo_path: Path) -> Demo:
    demo = asyncio.run(services.orchestrator.get_header(demo_path))
    services.cache.flush()
    if demo is None:
        console.print(f"[red]Error:[/red] could not read the header of {demo_path.name}")
        raise typer.Exit(1)
    return demo


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]demoshelf[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .toml or .json)", dir_okay=False
    ),
) -> None:
    """demoshelf - CS demo library manager"""
    _state["verbose"] = verbose
    _state["config_file"] = config_file


@app.command()
def scan(
    folders: Optional[list[Path]] = typer.Argument(
        None, help="Folders to scan (defaults to the configured library folders)"
    ),
) -> None:
    """List the demos found in the library folders."""
    services = _services()
    targets = folders or [Path(f) for f in services.config.library.folders]

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task("Scanning demo folders...", total=None)
        demos = asyncio.run(services.scanner.scan_headers(targets))
    services.cache.flush()

    table = Table(title=f"Demos ({len(demos)})")
    table.add_column("Name", style="cyan")
    table.add_column("Date")
    table.add_column("Map", style="green")
    table.add_column("Source")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Comment")

    for demo in demos:
        table.add_row(
            demo.name,
            demo.date.strftime("%Y-%m-%d %H:%M"),
            demo.map_name,
            demo.source.value,
            demo.type.value,
            demo.status,
            demo.comment,
        )
    console.print(table)


@app.command()
def analyze(
    demo_paths: list[Path] = typer.Argument(..., help="Demo files to analyze", dir_okay=False),
    mode: AnalysisMode = typer.Option(AnalysisMode.FULL, "--mode", "-m", help="Analysis pass to run"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not write results to the cache"),
) -> None:
    """Analyze demos and store the results in the cache."""
    services = _services()
    demos = []
    for demo_path in demo_paths:
        demo = asyncio.run(services.orchestrator.get_header(demo_path))
        if demo is None:
            console.print(f"[yellow]Skipping {demo_path.name}: unreadable header[/yellow]")
            continue
        demos.append(demo)
    services.cache.flush()

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(f"Running {mode.value} analysis on {len(demos)} demo(s)...", total=None)
        batch = asyncio.run(
            services.orchestrator.analyze_many(demos, mode, write_back=not no_cache)
        )

    for result in batch.results:
        if result.success:
            console.print(f"[green]OK[/green] {Path(result.demo_path).name} ({format_duration(result.duration_seconds)})")
        else:
            console.print(f"[red]FAILED[/red] {Path(result.demo_path).name}: {result.error_message}")

    console.print(f"\n{batch.successful}/{batch.total_demos} analyzed ({batch.success_rate}%)")
    if batch.failed:
        raise typer.Exit(1)


@app.command()
def bans(
    demo_path: Path = typer.Argument(..., help="Demo file to check", exists=True, dir_okay=False),
) -> None:
    """Check the roster of a demo for VAC and Overwatch bans."""
    services = _services()
    demo = _load_demo(services, demo_path)
    if not demo.players:
        console.print("[yellow]No roster yet, run a full analysis first[/yellow]")
        raise typer.Exit(1)

    steam = services.config.steam
    reconciler = BanReconciler(
        SteamBanService(steam.api_key, steam.timeout_seconds, steam.batch_size)
    )
    try:
        demo = asyncio.run(reconciler.reconcile(demo))
    except BanLookupError as e:
        console.print(f"[red]Ban lookup failed:[/red] {e}")
        raise typer.Exit(1)

    services.cache.put(demo)

    table = Table(title=f"Roster of {demo.name}")
    table.add_column("Player", style="cyan")
    table.add_column("Steam ID")
    table.add_column("VAC", justify="center")
    table.add_column("Overwatch", justify="center")
    for player in demo.players:
        table.add_row(
            player.name,
            str(player.steam_id),
            "[red]yes[/red]" if player.is_vac_banned else "no",
            "[red]yes[/red]" if player.is_overwatch_banned else "no",
        )
    console.print(table)
    if demo.has_cheater:
        console.print("[bold red]This demo has banned players[/bold red]")


@app.command()
def stats() -> None:
    """Show rank, overall and per-map statistics of the selected account."""
    services = _services()
    if not validate_steamid(services.config.stats.selected_account_steam_id):
        console.print("[yellow]No account selected (stats.selected_account_steam_id)[/yellow]")

    aggregator = services.stats
    rank = aggregator.last_rank()
    overall = aggregator.overall_stats()

    console.print(
        Panel(
            f"[cyan]Rank:[/cyan] {rank.name}\n"
            f"[cyan]Matches:[/cyan] {overall.match_count} "
            f"({overall.match_win_count}W / {overall.match_loss_count}L / {overall.match_draw_count}D)\n"
            f"[cyan]K/D:[/cyan] {overall.kill_death_ratio:.2f}  "
            f"[cyan]HS%:[/cyan] {overall.headshot_ratio:.2f}\n"
            f"[cyan]Kills:[/cyan] {overall.kill_count}  [cyan]Deaths:[/cyan] {overall.death_count}  "
            f"[cyan]Assists:[/cyan] {overall.assist_count}  [cyan]MVPs:[/cyan] {overall.mvp_count}",
            title="[bold blue]Overall[/bold blue]",
            expand=False,
        )
    )

    map_table = Table(title="Maps")
    map_table.add_column("Map", style="cyan")
    map_table.add_column("W", justify="right")
    map_table.add_column("L", justify="right")
    map_table.add_column("D", justify="right")
    map_table.add_column("Win %", justify="right")
    for record in aggregator.map_stats().maps.values():
        map_table.add_row(
            record.map.display_name,
            str(record.win_count),
            str(record.loss_count),
            str(record.draw_count),
            f"{record.win_percentage:.2f}",
        )
    console.print(map_table)

    history = aggregator.rank_history()
    if history:
        rank_table = Table(title="Rank history")
        rank_table.add_column("Date")
        rank_table.add_column("Rank", justify="right")
        for point in history:
            rank_table.add_row(point.date.strftime("%Y-%m-%d %H:%M"), str(point.rank))
        console.print(rank_table)


@app.command("import-backup")
def import_backup(
    backup_file: Optional[Path] = typer.Argument(None, help="Backup JSON file", dir_okay=False),
) -> None:
    """Restore demo records from a JSON backup into the cache."""
    services = _services()
    backup_file = backup_file or (
        Path(services.config.library.backup_file) if services.config.library.backup_file else None
    )
    if backup_file is None:
        console.print("[red]Error:[/red] no backup file given or configured")
        raise typer.Exit(1)

    try:
        demos = asyncio.run(BackupCodec().import_backup(backup_file))
    except ValueError as e:
        console.print(f"[red]Invalid backup:[/red] {e}")
        raise typer.Exit(1)

    for demo in demos:
        services.cache.put(demo)
    console.print(f"Restored [green]{len(demos)}[/green] demo(s) from {backup_file}")


@app.command("export-backup")
def export_backup(
    backup_file: Path = typer.Argument(..., help="Backup JSON file to write", dir_okay=False),
) -> None:
    """Write every cached demo record to a JSON backup."""
    services = _services()
    count = asyncio.run(BackupCodec().export_backup(services.cache.list_demos(), backup_file))
    console.print(f"Wrote [green]{count}[/green] demo(s) to {backup_file}")


@app.command()
def comment(
    demo_path: Path = typer.Argument(..., help="Demo file", exists=True, dir_okay=False),
    text: str = typer.Argument(..., help="Comment text"),
) -> None:
    """Set the comment of a demo."""
    services = _services()
    demo = _load_demo(services, demo_path)
    asyncio.run(services.orchestrator.save_comment(demo, text))
    console.print(f"Comment saved for {demo.name}")


@app.command()
def status(
    demo_path: Path = typer.Argument(..., help="Demo file", exists=True, dir_okay=False),
    value: str = typer.Argument(..., help="Status, e.g. 'toWatch' or 'watched'"),
) -> None:
    """Set the status of a demo."""
    services = _services()
    demo = _load_demo(services, demo_path)
    asyncio.run(services.orchestrator.save_status(demo, value))
    console.print(f"Status of {demo.name} set to {value}")


@app.command()
def source(
    name: str = typer.Argument(..., help=f"Source: {', '.join(s.value for s in DemoSource)}"),
    demo_paths: list[Path] = typer.Argument(..., help="Demo files", exists=True, dir_okay=False),
) -> None:
    """Reassign the source of demos (POV demos are left unchanged)."""
    services = _services()
    demos = [_load_demo(services, p) for p in demo_paths]
    updated = asyncio.run(services.orchestrator.set_source(demos, name))
    console.print(f"Source {DemoSource.from_name(name).value} set on {len(updated)} demo(s)")


@app.command("cache-info")
def cache_info(
    clear: bool = typer.Option(False, "--clear", help="Remove every cached record"),
    entries: bool = typer.Option(False, "--entries", help="List every cached record"),
) -> None:
    """Show cache statistics."""
    services = _services()
    if clear:
        services.cache.clear()

    stats_data = services.cache.get_stats().to_dict()
    table = Table(title=f"Cache ({services.cache.cache_dir})", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    for key, value in stats_data.items():
        table.add_row(key, str(value))
    console.print(table)

    if entries:
        entry_table = Table(title="Entries")
        entry_table.add_column("Fingerprint", style="cyan")
        entry_table.add_column("Demo file")
        entry_table.add_column("Last access")
        for entry in services.cache.list_entries():
            entry_table.add_row(entry["key"], entry["file_path"], entry["accessed_at"])
        console.print(entry_table)


@app.command("init-config")
def init_config(
    output: Path = typer.Argument(Path("demoshelf.yaml"), help="Config file to create", dir_okay=False),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    if output.exists() and not force:
        console.print(f"[yellow]{output} already exists, use --force to overwrite[/yellow]")
        raise typer.Exit(1)
    try:
        generate_default_config(output)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"Wrote default configuration to [green]{output}[/green]")


@app.command()
def info() -> None:
    """Display information about demoshelf and the environment."""
    console.print(f"\n[bold blue]demoshelf[/bold blue] v{__version__}\n")

    table = Table(show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.system())

    try:
        import demoparser2

        table.add_row("demoparser2", getattr(demoparser2, "__version__", "installed"))
    except ImportError:
        table.add_row("demoparser2", "[red]not installed[/red]")

    config = load_config(_state["config_file"])
    for folder in config.library.folders:
        status_text = "[green]exists[/green]" if Path(folder).exists() else "[yellow]not found[/yellow]"
        table.add_row("Library Folder", f"{folder} ({status_text})")

    console.print(table)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
