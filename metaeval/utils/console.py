"""
Rich console utilities for dual-mode CLI output.

Provides terminal output for humans and structured JSON for AI agents.
All output functions adapt based on the global output_mode setting.

This module provides:
- OutputMode: Class to manage output format (text/json/quiet)
- Context managers: spinner(), create_progress_bar()
- Output functions: success(), error(), warning(), info()
- Display functions: print_extraction_table(), print_comparison_table(),
  print_banner(), print_final_summary()

Human Mode (--format text):
    - Rich spinners, progress bars, colored tables
    - Panels and banners

Agent Mode (--format json):
    - Structured JSON output to stdout
    - No ANSI codes or spinners

Quiet Mode (--quiet):
    - Minimal output
    - Tab-separated values

Examples:
    >>> output_mode.format = "text"  # Human mode
    >>> with spinner("Loading gold data..."):
    ...     gold = load_gold_data(metrics, "golddata")
    >>> success("Gold data loaded")

    >>> output_mode.format = "json"  # Agent mode
    >>> success("Gold data loaded")  # Buffers to JSON
    >>> output_mode.flush_json()      # Outputs JSON to stdout
"""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from metaeval.evals.aggregator import MetricComparison
    from metaeval.extraction.orchestrator import ExtractionReport


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, suppress non-essential output
        _json_buffer: Internal buffer for JSON output in agent mode

    Examples:
        >>> mode = OutputMode()
        >>> mode.is_human()
        True
        >>> mode.format = "json"
        >>> mode.is_agent()
        True
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        """
        Raises:
            ValueError: If format_type is not "text" or "json"
        """
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        return self.format == "text"

    def is_agent(self) -> bool:
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Add key-value pair to the JSON buffer flushed by flush_json()."""
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


@contextmanager
def spinner(message: str):
    """
    Show a spinner during an operation in human mode; silent otherwise.

    Examples:
        >>> with spinner("Loading config..."):
        ...     config = load_config("metaeval.yaml")
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def create_progress_bar() -> Progress | NoOpProgress:
    """
    Create a progress bar for per-backend document extraction.

    Returns a Rich Progress instance in human mode and a no-op progress
    bar in agent/quiet modes.

    Examples:
        >>> progress = create_progress_bar()
        >>> with progress:
        ...     task = progress.add_task("grobid", total=1000)
        ...     progress.advance(task)
    """
    if output_mode.is_human() and not output_mode.quiet:
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
    return NoOpProgress()


class NoOpProgress:
    """
    No-op progress bar for agent mode.

    Provides the same interface as Rich Progress but does nothing.
    """

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass

    def add_task(self, _description: str, total: int | None = None) -> int:
        return 0

    def advance(self, _task_id: int, _advance: float = 1.0) -> None:
        pass


def success(message: str) -> None:
    """
    Print a success message.

    Human mode: Green checkmark with message
    Agent mode: Buffer to JSON
    Quiet mode: Silent
    """
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Print an error message.

    Human mode: Red X with message to stderr (also in quiet mode)
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human():
        console_err.print(f"[red]✗[/red] {message}", style="red")
    elif output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)


def warning(message: str) -> None:
    """Print a warning message (human mode) or buffer it (agent mode)."""
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        output_mode.add_json("warning", message)


def info(message: str) -> None:
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def _dps(value: float) -> str:
    return "∞" if value == float("inf") else f"{value:.2f}"


def print_extraction_table(reports: Sequence[ExtractionReport]) -> None:
    """
    Print extraction health per backend.

    Human mode: Rich table with throughput, failure rate and top error
    Agent/quiet mode: Silent (the final summary carries the same data)
    """
    if not output_mode.is_human() or output_mode.quiet:
        return

    table = Table(title="Extraction", box=box.ROUNDED)
    table.add_column("Backend", style="cyan", no_wrap=True)
    table.add_column("Documents", justify="right")
    table.add_column("Docs/sec", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Top error", style="magenta")

    for report in reports:
        failed = len(report.failures)
        failed_str = f"{failed} ({report.failure_rate:.1%})"
        if failed:
            failed_str = f"[yellow]{failed_str}[/yellow]"
        top = report.top_errors(1)
        top_str = f"{top[0][0]} ×{top[0][1]}" if top else "-"
        table.add_row(
            report.backend, str(report.total), _dps(report.documents_per_second), failed_str, top_str
        )

    console.print(table)


def _diff(value: float) -> str:
    if value > 0:
        return f"[green]{value:+.3f}[/green]"
    if value < 0:
        return f"[red]{value:+.3f}[/red]"
    return f"{value:+.3f}"


def print_comparison_table(
    baseline: str, variant: str, comparisons: Sequence[MetricComparison]
) -> None:
    """
    Print per-metric precision/recall of two backends and their differences.

    Human mode: Rich table, positive differences (baseline ahead) in green
    Quiet mode: Tab-separated rows
    Agent mode: Silent (comparisons are part of the run JSON)
    """
    if output_mode.is_agent():
        return

    if output_mode.quiet:
        for c in comparisons:
            print(
                f"{variant}\t{c.metric_name}\t{c.baseline.precision:.3f}\t"
                f"{c.variant.precision:.3f}\t{c.baseline.recall:.3f}\t"
                f"{c.variant.recall:.3f}\t{c.baseline.sample_count}"
            )
        return

    table = Table(title=f"{baseline} vs {variant}", box=box.ROUNDED)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column(f"P {baseline}", justify="right")
    table.add_column(f"P {variant}", justify="right")
    table.add_column("P diff", justify="right")
    table.add_column(f"R {baseline}", justify="right")
    table.add_column(f"R {variant}", justify="right")
    table.add_column("R diff", justify="right")
    table.add_column("Samples", justify="right", style="dim")

    for c in comparisons:
        table.add_row(
            c.metric_name,
            f"{c.baseline.precision:.3f}",
            f"{c.variant.precision:.3f}",
            _diff(c.precision_diff),
            f"{c.baseline.recall:.3f}",
            f"{c.variant.recall:.3f}",
            _diff(c.recall_diff),
            str(c.baseline.sample_count),
        )

    console.print(table)


def print_banner(version: str) -> None:
    """Print a startup banner in human mode."""
    if not output_mode.is_human() or output_mode.quiet:
        return

    banner = f"""
[bold cyan]╔{"═" * 39}╗
║   metaeval v{version:<25} ║
║   Score metadata extraction backends  ║
╚{"═" * 39}╝[/bold cyan]
"""

    console.print(banner)


def print_final_summary(
    run_id: str,
    document_count: int,
    metric_count: int,
    backends: Sequence[str],
    diagnostics_path: str | None,
) -> None:
    """
    Print final summary with run statistics.

    Human mode: Rich panel
    Agent mode: Flush all buffered JSON including these final stats
    Quiet mode: Tab-separated values
    """
    if output_mode.is_agent():
        output_mode.add_json("run_id", run_id)
        output_mode.add_json("document_count", document_count)
        output_mode.add_json("metric_count", metric_count)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        print(f"{run_id}\t{document_count}\t{metric_count}\t{diagnostics_path or ''}")
        return

    summary_text = f"""
[bold]Run ID:[/bold] {run_id}
[bold]Documents:[/bold] {document_count}
[bold]Metrics:[/bold] {metric_count}
[bold]Backends:[/bold] {", ".join(backends)} (baseline: {backends[0]})
[bold]Diagnostics:[/bold] {diagnostics_path or "disabled"}
"""

    panel = Panel(
        summary_text.strip(),
        title="[bold green]✓ Evaluation Complete[/bold green]",
        border_style="green",
        box=box.ROUNDED,
    )

    console.print(panel)


def print_metrics_table(metrics: Sequence[tuple[str, str]]) -> None:
    """
    Print (metric name, gold file) pairs.

    Human mode: Rich table
    Quiet mode: Tab-separated rows
    """
    if output_mode.is_agent():
        return

    if output_mode.quiet:
        for name, gold_file in metrics:
            print(f"{name}\t{gold_file}")
        return

    table = Table(title="Built-in metrics", box=box.ROUNDED)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Gold file", style="magenta")
    for name, gold_file in metrics:
        table.add_row(name, gold_file)
    console.print(table)
