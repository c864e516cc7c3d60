"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from uuid2asset import __version__
from uuid2asset.core.bundle_processor import BundleProcessor, build_engine
from uuid2asset.core.decoder import decode_uuid
from uuid2asset.exceptions import ConfigurationError, InvalidIdentifierError
from uuid2asset.media import AssetFetcher, close_connection_pool
from uuid2asset.models.config import RunConfig
from uuid2asset.models.stats import SessionStats
from uuid2asset.storage.config_manager import ConfigManager
from uuid2asset.web import EXTERNAL_ARCHIVE_NAME, SiteScraper

from .formatters import (
    print_config,
    print_decoded_table,
    print_run_settings,
    print_summary_panel,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("uuid2asset")

app = typer.Typer(
    name="uuid2asset",
    help=(
        "Rebuild a game's asset tree from its bundle manifests. Use 'uuid2asset"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "uuid2asset"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

# --- Options shared by the download commands ---
_EXTENSIONS_OPTION = typer.Option(
    None,
    "-e",
    "--ext",
    help="File extension to probe per asset (repeatable, e.g. -e .png -e .json).",
)
_CONCURRENCY_OPTION = typer.Option(
    None, "-c", "--concurrency", help="Maximum number of requests in flight."
)
_SUB_BATCH_OPTION = typer.Option(
    None, "--sub-batch", help="Number of requests per progress update."
)
_TIMEOUT_OPTION = typer.Option(
    None, "-t", "--timeout", help="Seconds before a single request is retried."
)
_RETRY_DELAY_OPTION = typer.Option(
    None, "--retry-delay", help="Seconds to wait before retrying a failed request."
)
_MAX_ATTEMPTS_OPTION = typer.Option(
    None,
    "--max-attempts",
    help="Give up on a file after this many tries (default: retry forever).",
)
_BACKOFF_OPTION = typer.Option(
    None, "--backoff", help="Multiply the retry delay by this factor on each retry."
)
_OUTPUT_OPTION = typer.Option(
    None, "-o", "--output", help="Directory where archives are written."
)
_QUIET_OPTION = typer.Option(
    False, "--quiet", "-q", help="Hide the progress display and info messages."
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """UUID to Asset bundle reconstructor"""
    if version:
        console.print(f"[bold]uuid2asset[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("uuid2asset").setLevel(log_level)

    if show_config:
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.as_display_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with all default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_default_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


def _load_config(**cli_values) -> RunConfig:
    """Loads the config file and applies any options given on the command line."""
    cli_options = {key: value for key, value in cli_values.items() if value is not None}
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e


def _run_session(
    config: RunConfig,
    quiet: bool,
    runner: Callable[[BundleProcessor, SessionStats], Awaitable[None]],
) -> SessionStats:
    """Runs a download session with a progress display and prints its summary."""
    if quiet:
        logging.getLogger("uuid2asset").setLevel("WARNING")
    else:
        print_run_settings(config)

    stats = SessionStats()

    async def _session_async() -> dict:
        async with ProgressManager(console=console, quiet=quiet) as progress_manager:
            fetcher = AssetFetcher(max_connections=config.concurrency_limit)
            processor = BundleProcessor(
                config, fetcher, progress_manager=progress_manager, stats=stats
            )
            try:
                await runner(processor, stats)
            finally:
                await close_connection_pool()
        return progress_manager.get_statistics()

    progress_stats = asyncio.run(_session_async())
    print_summary_panel(stats, progress_stats)
    return stats


@app.command(name="bundle")
def bundle_command(
    server_url: str = typer.Argument(
        ..., help="Root URL of the game, e.g. https://example.com/game/v1/"
    ),
    manifests: list[Path] = typer.Argument(  # noqa: B008
        ..., help="One or more bundle config files (config.<hash>.json)."
    ),
    extensions: list[str] | None = _EXTENSIONS_OPTION,
    concurrency: int | None = _CONCURRENCY_OPTION,
    sub_batch: int | None = _SUB_BATCH_OPTION,
    timeout: float | None = _TIMEOUT_OPTION,
    retry_delay: float | None = _RETRY_DELAY_OPTION,
    max_attempts: int | None = _MAX_ATTEMPTS_OPTION,
    backoff: float | None = _BACKOFF_OPTION,
    output: str | None = _OUTPUT_OPTION,
    quiet: bool = _QUIET_OPTION,
):
    """Download the assets of local bundle manifests (manual mode)."""
    config = _load_config(
        server_url=server_url,
        sources=[str(m) for m in manifests],
        extensions=extensions or None,
        concurrency_limit=concurrency,
        sub_batch_size=sub_batch,
        task_timeout=timeout,
        retry_delay=retry_delay,
        max_attempts=max_attempts,
        backoff_factor=backoff,
        output_dir=output,
    )
    log.info(f"Target Game: [cyan]{config.server_url}[/cyan]")
    log.info(f"Bundles: {', '.join(config.sources)}")

    async def _runner(processor: BundleProcessor, stats: SessionStats) -> None:
        await processor.process_all(manifests, config.server_url)

    _run_session(config, quiet, _runner)


@app.command(name="auto")
def auto_command(
    html_url: str = typer.Argument(
        ..., help="URL of the game's index.html page."
    ),
    extensions: list[str] | None = _EXTENSIONS_OPTION,
    concurrency: int | None = _CONCURRENCY_OPTION,
    sub_batch: int | None = _SUB_BATCH_OPTION,
    timeout: float | None = _TIMEOUT_OPTION,
    retry_delay: float | None = _RETRY_DELAY_OPTION,
    max_attempts: int | None = _MAX_ATTEMPTS_OPTION,
    backoff: float | None = _BACKOFF_OPTION,
    output: str | None = _OUTPUT_OPTION,
    no_external: bool = typer.Option(
        False, "--no-external", help=f"Do not write {EXTERNAL_ARCHIVE_NAME}."
    ),
    quiet: bool = _QUIET_OPTION,
):
    """Discover bundles from a game's index.html and download them all."""
    if ".htm" not in html_url:
        console.print(
            "[yellow]⚠️  The URL does not look like an HTML page; "
            "discovery may find nothing.[/yellow]"
        )
    config = _load_config(
        sources=[html_url],
        extensions=extensions or None,
        concurrency_limit=concurrency,
        sub_batch_size=sub_batch,
        task_timeout=timeout,
        retry_delay=retry_delay,
        max_attempts=max_attempts,
        backoff_factor=backoff,
        output_dir=output,
        external_archive=False if no_external else None,
    )

    async def _runner(processor: BundleProcessor, stats: SessionStats) -> None:
        scraper = SiteScraper(processor.fetcher, build_engine(config))
        result = await scraper.discover(html_url)

        stats.external_files = len(result.external_archive)
        if config.external_archive and len(result.external_archive):
            path = await result.external_archive.flush(
                Path(config.output_dir) / EXTERNAL_ARCHIVE_NAME
            )
            log.info(f"[green]✓ External files saved to[/green] {path}")

        if not result.bundles:
            log.warning("[yellow]No bundle configs were discovered.[/yellow]")
            return
        await processor.process_all(result.manifests, result.base_url)

    _run_session(config, quiet, _runner)


@app.command(name="decode")
def decode_command(
    identifiers: list[str] = typer.Argument(  # noqa: B008
        ..., help="Compact identifiers to expand (22-character form)."
    ),
):
    """Decode compact identifiers into their full UUID form."""
    pairs = []
    for compact in identifiers:
        try:
            pairs.append((compact, decode_uuid(compact)))
        except InvalidIdentifierError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1) from e
    print_decoded_table(pairs)
