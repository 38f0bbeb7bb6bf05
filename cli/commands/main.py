"""Main CLI interface using Typer."""

import json
import signal
import typer
from pathlib import Path
from typing import Dict, List, Optional
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn, TimeElapsedColumn

from vocabtrans.core.events import EventSink, LOG_LEVELS
from vocabtrans.core.exceptions import TranslationRunError, VocabTransError
from vocabtrans.core.models import OperationSummary, TranslationResult, UsageStats
from vocabtrans.core.orchestrator import BatchOrchestrator
from vocabtrans.core.settings import TranslatorSettings
from vocabtrans.translation.endpoints import EndpointConfig
from vocabtrans.utils.cache import ResultCache
from vocabtrans.utils.config_loader import load_config, update_config_file
from vocabtrans.utils.logger import setup_logger
from vocabtrans.utils.persistence import (
    CACHE_STORE_KEY,
    USAGE_STATS_KEY,
    DiskStateStore,
    StateStore,
)

app = typer.Typer(
    name="vocabtrans",
    help="VocabTrans: resilient batch translation of vocabulary lists",
    add_completion=False
)

console = Console()

DEFAULT_STATE_DIR = Path(".cache/vocabtrans")

_LEVEL_STYLES = {
    "info": "dim",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


class RichProgressSink(EventSink):
    """Shows run events on a rich progress bar and writes partial results to disk."""

    def __init__(self, progress: Progress, task_id, output: Optional[Path] = None,
                 log_level: str = "detailed"):
        self.progress = progress
        self.task_id = task_id
        self.output = output
        self.log_level = log_level

    def on_progress(self, done_batches: int, total_batches: int,
                    done_words: int, total_words: int) -> None:
        self.progress.update(
            self.task_id,
            total=total_words or 1,
            completed=done_words,
            description=f"[cyan]Batch {done_batches}/{total_batches}"
        )

    def on_log_event(self, message: str, level: str = "info") -> None:
        if level not in LOG_LEVELS:
            level = "info"
        if level == "info" and self.log_level == "minimal":
            return
        style = _LEVEL_STYLES[level]
        self.progress.console.print(f"[{style}]{message}[/{style}]")

    def on_partial_results(self, results: Dict[str, TranslationResult]) -> None:
        if self.output is not None:
            _write_results(self.output, results)


@app.command()
def translate(
    words_file: Path = typer.Argument(..., help="Text file with one word per line"),
    source_lang: str = typer.Option("en", "-s", "--source", help="Source language"),
    target_lang: str = typer.Option("ar", "-t", "--target", help="Target language"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML settings file"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output JSON file"),
    state_dir: Path = typer.Option(DEFAULT_STATE_DIR, "--state-dir", help="Directory for cache and usage stats"),
    model: Optional[str] = typer.Option(None, "--model", help="Model name"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Fixed batch size (disables adaptive batching)"),
    no_rate_limit: bool = typer.Option(False, "--no-rate-limit", help="Disable client-side rate limiting"),
    debug_mode: bool = typer.Option(False, "--debug/--no-debug", help="Enable debug logging"),
):
    """Translate a list of vocabulary words."""

    setup_logger(level="DEBUG" if debug_mode else "WARNING")

    if not words_file.exists():
        console.print(f"[red]Error: Words file not found: {words_file}[/red]")
        raise typer.Exit(1)

    if output is None:
        output = words_file.with_name(f"{words_file.stem}_translations.json")

    settings = _load_settings(config, model=model, batch_size=batch_size, no_rate_limit=no_rate_limit)
    words = _read_words(words_file)

    console.print("[bold blue]VocabTrans Batch Translation[/bold blue]")
    console.print(f"Words: {len(words)} from {words_file}")
    console.print(f"Output: {output}")
    console.print(f"Translation: {source_lang} → {target_lang}")
    console.print(f"Model: {settings.model or '(worker default)'}\n")

    store = _open_store(state_dir)
    on_settings_changed = None
    if config is not None:
        def on_settings_changed(changed: TranslatorSettings) -> None:
            # Only promotion and RPM changes go back to the file
            update_config_file(changed, str(config))

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=30),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False
    ) as progress:
        task_id = progress.add_task("[cyan]Translating...", total=len(words) or 1)
        sink = RichProgressSink(progress, task_id, output=output, log_level=settings.log_level)
        orchestrator = BatchOrchestrator.from_settings(
            settings, state_store=store, events=sink, on_settings_changed=on_settings_changed
        )

        def request_cancel(signum, frame):
            progress.console.print("[yellow]Cancelling after the current batch...[/yellow]")
            orchestrator.cancel_token.request_cancel()

        previous_handler = signal.signal(signal.SIGINT, request_cancel)
        orchestrator.start_cache_sweeper()
        try:
            results = orchestrator.process_words_in_batches(words, source_lang, target_lang)
        except TranslationRunError as e:
            _write_results(output, e.partial_results)
            _display_summary(e.summary)
            console.print(f"\n[red]Translation aborted: {e.reason}[/red]")
            if e.suggestion:
                console.print(f"[yellow]Suggestion: {e.suggestion}[/yellow]")
            console.print(f"Partial results ({len(e.partial_results)} words) saved to {output}")
            raise typer.Exit(1)
        except VocabTransError as e:
            console.print(f"[red]Error: {str(e)}[/red]")
            raise typer.Exit(1)
        finally:
            orchestrator.stop_cache_sweeper()
            signal.signal(signal.SIGINT, previous_handler)
            _close_store(store)

        progress.update(task_id, completed=progress.tasks[0].total,
                        description=f"[green]✓ {orchestrator.status.value.capitalize()}")

    _write_results(output, results)
    _display_summary(orchestrator.last_summary)
    console.print(f"\n[bold green]Translated {len(results)} word(s)[/bold green]")
    console.print(f"Output: {output}")


@app.command()
def cache(
    action: str = typer.Argument(..., help="Action: stats, sweep, clear"),
    state_dir: Path = typer.Option(DEFAULT_STATE_DIR, "--state-dir", help="Directory for cache and usage stats"),
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML settings file"),
):
    """Inspect or maintain the translation cache."""

    settings = _load_settings(config)
    store = _open_store(state_dir)
    try:
        state = store.load()
        result_cache = ResultCache.from_dict(
            state.get(CACHE_STORE_KEY), ttl_hours=settings.cache_ttl_hours
        )

        if action == "stats":
            console.print("\n[bold]Translation Cache[/bold]\n")
            console.print(f"  entries: {len(result_cache)}")
            console.print(f"  ttl_hours: {result_cache.ttl_hours}")
            console.print(f"  location: {state_dir}")

        elif action == "sweep":
            removed = result_cache.sweep()
            state[CACHE_STORE_KEY] = result_cache.to_dict()
            store.save(state)
            console.print(f"[green]✓ Removed {removed} expired entr{'y' if removed == 1 else 'ies'}[/green]")

        elif action == "clear":
            state[CACHE_STORE_KEY] = {}
            store.save(state)
            console.print("[green]✓ Cache cleared[/green]")

        else:
            console.print(f"[red]Unknown action: {action}[/red]")
            console.print("Valid actions: stats, sweep, clear")
            raise typer.Exit(1)
    finally:
        _close_store(store)


@app.command()
def stats(
    state_dir: Path = typer.Option(DEFAULT_STATE_DIR, "--state-dir", help="Directory for cache and usage stats"),
):
    """Show usage statistics collected across runs."""

    store = _open_store(state_dir)
    try:
        usage = UsageStats.from_dict(store.load().get(USAGE_STATS_KEY))
    finally:
        _close_store(store)

    stats_table = Table(title="Usage Statistics", show_header=True, header_style="bold cyan")
    stats_table.add_column("Metric", style="cyan")
    stats_table.add_column("Value", justify="right")
    stats_table.add_row("Words processed", str(usage.total_words_processed))
    stats_table.add_row("Batches", str(usage.total_batches))
    stats_table.add_row("Successful batches", str(usage.successful_batches))
    stats_table.add_row("Failed batches", str(usage.failed_batches))
    stats_table.add_row("Average batch size", f"{usage.avg_batch_size}")
    stats_table.add_row("Success rate", f"{usage.success_rate}%")

    console.print()
    console.print(stats_table)


@app.command()
def endpoints(
    config: Optional[Path] = typer.Option(None, "-c", "--config", help="YAML settings file"),
):
    """Show the ordered endpoint list and the effective request rate."""

    settings = _load_settings(config)
    endpoint_config = EndpointConfig(
        primary=settings.primary_endpoint,
        backups=list(settings.backup_endpoints)
    )
    urls = endpoint_config.ordered_urls()

    endpoints_table = Table(title="Translation Endpoints", show_header=True, header_style="bold cyan")
    endpoints_table.add_column("#", justify="right")
    endpoints_table.add_column("Role")
    endpoints_table.add_column("URL")

    for idx, url in enumerate(urls, start=1):
        role = "[green]primary[/green]" if idx == 1 else "backup"
        endpoints_table.add_row(str(idx), role, url)

    console.print()
    console.print(endpoints_table)

    if not urls:
        console.print("[red]No valid https endpoint configured[/red]")
        raise typer.Exit(1)

    console.print(
        f"\nModel: {settings.model or '(worker default)'}  "
        f"RPM: {settings.effective_rpm()} (configured {settings.requests_per_minute}, "
        f"model ceiling {settings.model_rpm_cap()})"
    )


def _load_settings(
    config: Optional[Path],
    model: Optional[str] = None,
    batch_size: Optional[int] = None,
    no_rate_limit: bool = False
) -> TranslatorSettings:
    """Load settings from file/env and apply command-line overrides."""
    try:
        settings = load_config(str(config) if config else None)
    except (FileNotFoundError, VocabTransError) as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)

    if model:
        settings.model = model
    if batch_size is not None:
        settings.batch_size = batch_size
        settings.enable_adaptive_batching = False
    if no_rate_limit:
        settings.enable_rate_limiting = False

    issues = settings.validate()
    if issues:
        for issue in issues:
            console.print(f"[red]Invalid setting: {issue}[/red]")
        raise typer.Exit(1)

    return settings


def _read_words(path: Path) -> List[str]:
    """One word per line; blank lines and # comments are skipped."""
    words = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            words.append(line)
    return words


def _write_results(path: Path, results: Dict[str, TranslationResult]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {word: result.to_dict() for word, result in results.items()}
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _open_store(state_dir: Path) -> StateStore:
    try:
        return DiskStateStore(str(state_dir))
    except VocabTransError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)


def _close_store(store: StateStore) -> None:
    if isinstance(store, DiskStateStore):
        store.close()


def _display_summary(summary: Optional[OperationSummary]):
    """Display the operation summary in a panel."""
    if summary is None:
        return

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Field", style="cyan")
    summary_table.add_column("Value")
    summary_table.add_row("Status", summary.final_status.value.upper())
    summary_table.add_row("Duration", f"{round(summary.duration)}s")
    summary_table.add_row("Total words", str(summary.total_words))
    summary_table.add_row("Processed", str(summary.processed_words))
    summary_table.add_row("Successful batches", str(summary.success_count))
    summary_table.add_row("Failed batches", str(summary.failure_count))

    if summary.error_categories:
        categories = ", ".join(
            f"{getattr(category, 'value', category)}: {count}"
            for category, count in summary.error_categories.items()
        )
        summary_table.add_row("Error types", categories)
    if summary.failure_reason:
        summary_table.add_row("Failure reason", f"[red]{summary.failure_reason}[/red]")
    for suggestion in summary.suggestions:
        summary_table.add_row("Suggestion", f"[yellow]{suggestion}[/yellow]")

    style = "green" if summary.final_status.value == "completed" else "yellow"
    if summary.final_status.value == "failed":
        style = "red"

    console.print()
    console.print(Panel(summary_table, title="Operation Summary", border_style=style))


def cli():
    """Main CLI entry point."""
    load_dotenv()
    app()


if __name__ == "__main__":
    cli()
