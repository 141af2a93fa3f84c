"""
CLI entrypoint for metaeval.

Provides a dual-mode command-line interface with:
- Human-friendly output: Rich spinners, tables, progress bars, colored text
- Agent-friendly output: Structured JSON for AI automation
- Quiet mode: Tab-separated minimal output for shell scripts

Commands:
    run: Extract the gold corpus with every backend and compare scores
    validate: Validate configuration (and optionally gold data) without extracting
    metrics: List the built-in metrics and their gold files

Exit codes:
    0: Success
    1: Configuration error (invalid YAML, unknown metric or backend plugin)
    2: Gold data error (missing file, malformed row)
    3: Health gate failure (extraction too slow or failing too often)

Examples:
    # Human-friendly output with progress bars
    metaeval run --config metaeval.yaml

    # Agent-friendly JSON output (no spinners, no colors)
    metaeval run --config metaeval.yaml --format json

    # Quiet mode for scripts (tab-separated)
    metaeval run --config metaeval.yaml --quiet
"""

import asyncio
from importlib.metadata import PackageNotFoundError
from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from metaeval.config.loader import load_config
from metaeval.evals.gold import document_ids, load_gold_data
from metaeval.evals.registry import default_registry
from metaeval.exceptions import (
    BackendError,
    ConfigFileNotFoundError,
    ConfigurationError,
    GoldDataError,
    HealthCheckError,
)
from metaeval.report.comparison import format_comparison_table, run_to_dict
from metaeval.runner import run_evaluation, select_metrics
from metaeval.utils.console import (
    console,
    create_progress_bar,
    error,
    info,
    output_mode,
    print_banner,
    print_comparison_table,
    print_extraction_table,
    print_final_summary,
    print_metrics_table,
    spinner,
    success,
    warning,
)
from metaeval.utils.logging import setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

EXIT_SUCCESS = 0  # Evaluation completed
EXIT_CONFIG_ERROR = 1  # Config validation failed
EXIT_GOLD_DATA_ERROR = 2  # Gold data missing or malformed
EXIT_HEALTH_CHECK_FAILED = 3  # A backend failed the health gate


app = typer.Typer(
    name="metaeval",
    help="Score bibliographic metadata extraction backends against gold data",
    add_completion=False,
)


def _fail(message: str, exit_code: int, error_type: str) -> None:
    error(message)
    if output_mode.is_agent():
        output_mode.add_json("error_type", error_type)
        output_mode.flush_json()
    raise typer.Exit(exit_code)


@app.command()
def run(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to YAML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output (tab-separated values)",
    ),
    plain: bool = typer.Option(
        False,
        "--plain",
        help="Print fixed-width text tables instead of Rich tables",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
):
    """
    Extract every gold document with each backend and compare their scores.

    This command will:
    1. Load your configuration (gold data, corpora, backends)
    2. Load gold labels for every selected metric
    3. Run each backend over the corpus, enforcing the health gate
    4. Average per-metric precision/recall for each backend
    5. Compare every backend with the first one (baseline)

    Unmatched items are written to the diagnostics TSV for manual inspection.

    Exit codes:
      0: Evaluation completed
      1: Configuration error
      2: Gold data error
      3: Health gate failure

    Examples:
      metaeval run --config metaeval.yaml
      metaeval run --config metaeval.yaml --format json
      metaeval run --config metaeval.yaml --plain
    """
    output_mode.format = format
    output_mode.quiet = quiet

    # Suppress JSON logs in human mode (unless verbose=True)
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())

    print_banner(_read_version())

    try:
        with spinner("Loading configuration..."):
            eval_config = load_config(config)
        success(
            f"Loaded {len(eval_config.backends)} backends "
            f"(baseline: {eval_config.baseline.name})"
        )
    except ConfigFileNotFoundError as e:
        _fail(f"Configuration file not found: {e}", EXIT_CONFIG_ERROR, "file_not_found")
    except ConfigurationError as e:
        _fail(f"Configuration validation failed: {e}", EXIT_CONFIG_ERROR, "validation_error")

    progress = create_progress_bar()
    tasks: dict[str, int] = {}

    def on_backend_start(name: str, total: int) -> None:
        tasks[name] = progress.add_task(name, total=total)

    def on_document_done(name: str) -> None:
        progress.advance(tasks[name])

    try:
        with progress:
            evaluation = asyncio.run(
                run_evaluation(
                    eval_config,
                    on_backend_start=on_backend_start,
                    on_document_done=on_document_done,
                )
            )
    except (ConfigurationError, BackendError) as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR, "validation_error")
    except GoldDataError as e:
        _fail(f"Gold data error: {e}", EXIT_GOLD_DATA_ERROR, "gold_data_error")
    except HealthCheckError as e:
        _fail(f"Health check failed: {e}", EXIT_HEALTH_CHECK_FAILED, "health_check_failed")

    for backend in evaluation.backends:
        if backend.extraction.failures:
            warning(
                f"{backend.name}: {len(backend.extraction.failures)} documents failed "
                f"to extract (scored as 0.0)"
            )

    print_extraction_table([backend.extraction for backend in evaluation.backends])

    baseline = evaluation.baseline.name
    for variant, comparisons in evaluation.comparisons.items():
        if plain and output_mode.is_human() and not output_mode.quiet:
            console.print(
                format_comparison_table(baseline, variant, comparisons),
                markup=False,
                highlight=False,
            )
        else:
            print_comparison_table(baseline, variant, comparisons)

    if output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("run", run_to_dict(evaluation))

    print_final_summary(
        run_id=evaluation.run_id,
        document_count=evaluation.document_count,
        metric_count=len(evaluation.metric_names),
        backends=[backend.name for backend in evaluation.backends],
        diagnostics_path=evaluation.diagnostics_path,
    )
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def validate(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to YAML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    check_gold: bool = typer.Option(
        False,
        "--check-gold",
        help="Also load and parse every gold file",
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
):
    """
    Validate configuration file without extracting anything.

    Checks:
    - YAML syntax is valid
    - All required fields are present and pass validation rules
    - Metric names and backend plugins exist
    - With --check-gold: every gold file exists and every row parses

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
      2: Gold data is missing or malformed (--check-gold)

    Examples:
      metaeval validate --config metaeval.yaml
      metaeval validate --config metaeval.yaml --check-gold --format json
    """
    output_mode.format = format

    try:
        with spinner("Validating configuration..."):
            eval_config = load_config(config)
            metrics = select_metrics(eval_config)
            gold_documents = None
            if check_gold:
                gold = load_gold_data(
                    metrics,
                    eval_config.gold.directory,
                    eval_config.gold.files,
                    max_documents=eval_config.run_settings.max_documents,
                )
                gold_documents = len(document_ids(gold))
    except ConfigFileNotFoundError as e:
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
        _fail(f"Configuration file not found: {e}", EXIT_CONFIG_ERROR, "file_not_found")
    except ConfigurationError as e:
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
        _fail(f"Validation failed: {e}", EXIT_CONFIG_ERROR, "validation_error")
    except GoldDataError as e:
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
        _fail(f"Gold data error: {e}", EXIT_GOLD_DATA_ERROR, "gold_data_error")

    success("Configuration is valid")
    info(f"Backends: {', '.join(b.name for b in eval_config.backends)}")
    info(f"Metrics: {len(metrics)}")
    if gold_documents is not None:
        info(f"Gold documents: {gold_documents}")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("backends", [b.name for b in eval_config.backends])
        output_mode.add_json("metrics_count", len(metrics))
        if gold_documents is not None:
            output_mode.add_json("gold_documents", gold_documents)
        output_mode.flush_json()

    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def metrics(
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
):
    """
    List the built-in metrics and the gold file each is scored against.

    Examples:
      metaeval metrics
      metaeval metrics --format json
    """
    output_mode.format = format
    registry = default_registry()

    if output_mode.is_agent():
        output_mode.add_json(
            "metrics",
            [{"name": m.name, "gold_file": m.gold_file} for m in registry],
        )
        output_mode.flush_json()
        raise typer.Exit(EXIT_SUCCESS)

    print_metrics_table([(m.name, m.gold_file) for m in registry])
    raise typer.Exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    metaeval - Score bibliographic metadata extraction backends.

    Compares two or more PDF metadata extractors against gold-standard
    labels and reports per-field precision and recall.

    Exit codes:
      0: Success
      1: Configuration error
      2: Gold data error
      3: Health gate failure

    Use 'metaeval COMMAND --help' for detailed command documentation.
    """
    if version:
        console.print(f"[bold cyan]metaeval[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Quick start:")
        console.print("  metaeval run --config metaeval.yaml")
        console.print()
        console.print("Commands:")
        console.print("  run       Extract and compare backends against gold data")
        console.print("  validate  Validate configuration without extracting")
        console.print("  metrics   List built-in metrics")


def _read_version() -> str:
    """Read version from package metadata."""
    try:
        from importlib.metadata import version

        return version("metaeval")
    except PackageNotFoundError:
        return "0.1.0"


if __name__ == "__main__":
    app()
