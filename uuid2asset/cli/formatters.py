"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from uuid2asset.models.config import RunConfig
from uuid2asset.models.stats import BundleStatus, SessionStats
from uuid2asset.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `uuid2asset init --force` to write a fresh default config.",
        ],
        "MalformedManifestError": [
            "• Make sure the file is a bundle `config.<hash>.json`.",
            "• The bundle may use a manifest format that is not supported.",
        ],
        "EmptyResultSetError": [
            "• The bundle config probably uses a new way to define file names.",
            "• Check that the server URL points at the game's root directory.",
        ],
        "DiscoveryError": [
            "• Verify that the URL points at the game's index.html.",
            "• Try the manual mode with a downloaded bundle config instead.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The server might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A download timed out, which may indicate network throttling.",
            "• Try reducing the concurrency with `--concurrency`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the effective configuration."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if isinstance(value, list):
            value = ", ".join(map(str, value))
        elif value is None:
            value = "[dim]unset[/dim]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_run_settings(config: RunConfig):
    """Displays a summary of the settings used for a run."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    retries = (
        "unbounded" if config.max_attempts is None else f"max {config.max_attempts}"
    )
    table.add_row(
        "Concurrency:",
        f"{config.concurrency_limit} (sub-batch {config.sub_batch_size})",
    )
    table.add_row("Task Timeout:", f"{config.task_timeout:g}s")
    table.add_row(
        "Retries:",
        f"{retries}, {config.retry_delay:g}s delay (x{config.backoff_factor:g})",
    )
    table.add_row("Extensions:", f"[dim]{' '.join(config.extensions)}[/dim]")
    table.add_row("Output Dir:", f"[dim]{escape(config.output_dir)}[/dim]")

    console.print(Panel(table, title="[bold]Run Settings[/bold]", border_style="cyan"))


def print_decoded_table(pairs: list[tuple[str, str]]):
    """Displays compact identifiers next to their decoded form."""
    console = Console()
    table = Table(box=box.SIMPLE)
    table.add_column("Compact", style="dim")
    table.add_column("Decoded", style="cyan")
    for compact, decoded in pairs:
        table.add_row(escape(compact), escape(decoded))
    console.print(table)


def print_summary_panel(stats: SessionStats, progress_stats: dict | None = None):
    """Displays a final summary of the session."""
    console = Console()
    duration_s = stats.elapsed

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Bundles Written:",
        f"[bold green]{stats.count(BundleStatus.WRITTEN)}[/bold green]",
    )
    if empty := stats.count(BundleStatus.EMPTY):
        stats_table.add_row("○ Empty Bundles:", f"[yellow]{empty}[/yellow]")
    failed = stats.count(BundleStatus.MALFORMED) + stats.count(BundleStatus.ERROR)
    if failed:
        stats_table.add_row("✗ Failed Bundles:", f"[bold red]{failed}[/bold red]")
    if stats.external_files:
        stats_table.add_row("External Files:", f"[cyan]{stats.external_files}[/cyan]")

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row(
        "Files Found:", f"[green]{stats.files_found}[/green] / {stats.tasks_total} probed"
    )
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.bytes_downloaded)}[/cyan]"
    )
    if stats.retries:
        stats_table.add_row("Retries:", f"[yellow]{stats.retries}[/yellow]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.tasks_total > 0 and duration_s > 0:
        stats_table.add_row(
            "Throughput:",
            f"[cyan]{stats.tasks_total / duration_s:.1f} requests/s[/cyan]",
        )
    if progress_stats and progress_stats.get("peak_rate"):
        stats_table.add_row(
            "Peak Rate:", f"[magenta]{progress_stats['peak_rate']:.1f} items/s[/magenta]"
        )

    for report in stats.bundles:
        if report.status is BundleStatus.WRITTEN:
            continue
        stats_table.add_row(
            f"[dim]{escape(report.name)}[/dim]",
            f"[dim]{report.status.value}: {escape(report.error or '')}[/dim]",
        )

    console.print()
    console.print(
        Panel(
            stats_table,
            title="📦 [bold]Reconstruction Complete[/bold]",
            border_style="green" if not failed else "yellow",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
