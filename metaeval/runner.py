"""
Evaluation run driver.

run_evaluation() is the in-process API behind ``metaeval run``:

1. Select metrics and load their gold data (fails fast on malformed rows)
2. For each backend, extract every gold document concurrently
3. Enforce the health gate for backends that opt into it
4. Average per-metric precision/recall for each backend
5. Compare every other backend against the first (baseline)

Per-document extraction failures never abort a run; configuration errors,
gold data errors and health gate violations do.
"""

import logging
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from functools import partial

from metaeval.config.schema import BackendConfig, EvalConfig
from metaeval.evals.aggregator import MetricComparison, MetricScore, compare, compute_pr
from metaeval.evals.diagnostics import InMemoryDiagnosticSink, TsvDiagnosticSink
from metaeval.evals.gold import GoldRecord, document_ids, load_gold_data
from metaeval.evals.registry import MetricRegistry, default_registry
from metaeval.extraction.backends import BackendRegistry
from metaeval.extraction.corpus import DocumentCorpus
from metaeval.extraction.orchestrator import (
    ExtractionReport,
    check_health,
    log_extraction_summary,
    run_extractions,
)
from metaeval.utils.logging import log_with_context
from metaeval.utils.time import run_id_from_timestamp, utc_timestamp

logger = logging.getLogger(__name__)

DiagnosticWriter = TsvDiagnosticSink | InMemoryDiagnosticSink


@dataclass(frozen=True)
class BackendEvaluation:
    """Extraction outcome and metric scores of one backend."""

    name: str
    extraction: ExtractionReport
    scores: list[MetricScore]


@dataclass(frozen=True)
class EvaluationRun:
    """
    Result of a complete evaluation run.

    Attributes:
        run_id: Filesystem-safe run identifier (UTC timestamp slug)
        timestamp_utc: Run start time, ISO 8601
        metric_names: Metrics scored, in registry order
        document_count: Distinct documents with gold data
        backends: Per-backend results; the first is the baseline
        comparisons: Variant backend name -> comparison against the baseline
        diagnostics_path: TSV the unmatched items were written to, if any
    """

    run_id: str
    timestamp_utc: str
    metric_names: list[str]
    document_count: int
    backends: list[BackendEvaluation]
    comparisons: dict[str, list[MetricComparison]] = field(default_factory=dict)
    diagnostics_path: str | None = None

    @property
    def baseline(self) -> BackendEvaluation:
        return self.backends[0]


def select_metrics(config: EvalConfig, registry: MetricRegistry | None = None) -> MetricRegistry:
    """
    Metrics a config asks for.

    Raises:
        MetricRegistryError: If a configured metric name is unknown
    """
    registry = registry if registry is not None else default_registry()
    if config.metrics is None:
        return registry
    return registry.select(config.metrics)


async def evaluate_backend(
    backend_config: BackendConfig,
    config: EvalConfig,
    gold: list[GoldRecord],
    sink: DiagnosticWriter | None = None,
    on_document_done: Callable[[str], None] | None = None,
) -> BackendEvaluation:
    """
    Extract, gate and score one backend.

    Raises:
        ConfigValidationError: If the backend plugin or its options are invalid
        BackendError: If the backend cannot be created
        HealthCheckError: If the backend fails the health gate
    """
    backend = BackendRegistry.create_backend(
        backend_config.plugin, backend_config.name, backend_config.options
    )
    corpus = DocumentCorpus(backend_config.corpus.directory, backend_config.corpus.suffix)
    settings = config.run_settings

    report = await run_extractions(
        backend,
        corpus,
        document_ids(gold),
        max_concurrent=settings.max_concurrent_documents,
        progress_interval=settings.progress_interval,
        timeout=settings.document_timeout_seconds,
        on_document_done=(
            partial(on_document_done, backend_config.name) if on_document_done else None
        ),
    )
    log_extraction_summary(report, top_n=config.health.top_errors)

    if backend_config.enforce_health:
        check_health(
            report,
            min_documents_per_second=config.health.min_documents_per_second,
            max_failure_rate=config.health.max_failure_rate,
        )
    else:
        logger.info(f"{backend_config.name}: health gate disabled")

    scores = compute_pr(
        gold,
        report.results,
        sink.for_backend(backend_config.name) if sink is not None else None,
    )
    return BackendEvaluation(backend_config.name, report, scores)


async def run_evaluation(
    config: EvalConfig,
    registry: MetricRegistry | None = None,
    sink: DiagnosticWriter | None = None,
    on_backend_start: Callable[[str, int], None] | None = None,
    on_document_done: Callable[[str], None] | None = None,
) -> EvaluationRun:
    """
    Run a complete evaluation.

    Args:
        config: Validated configuration (paths already resolved)
        registry: Metric catalog (default: every built-in metric)
        sink: Diagnostic sink. When None, a TSV sink is opened at
            run_settings.diagnostics_path (if set) for the duration of the run
        on_backend_start: Called with (backend name, document count)
        on_document_done: Called with the backend name after each document

    Returns:
        EvaluationRun with per-backend scores and baseline comparisons

    Raises:
        MetricRegistryError: If a configured metric is unknown
        GoldDataError: If gold data is missing or malformed
        HealthCheckError: If a gated backend is too slow or fails too often

    Example:
        >>> config = load_config("examples/metaeval.yaml")
        >>> run = await run_evaluation(config)
        >>> for comparison in run.comparisons["grobid"]:
        ...     print(comparison.metric_name, f"{comparison.precision_diff:+.3f}")
    """
    run_id = run_id_from_timestamp()
    timestamp_utc = utc_timestamp()
    metrics = select_metrics(config, registry)

    logger.info(
        f"Starting evaluation {run_id}: {len(metrics)} metrics, "
        f"{len(config.backends)} backends"
    )

    gold = load_gold_data(
        metrics,
        config.gold.directory,
        config.gold.files,
        max_documents=config.run_settings.max_documents,
    )
    document_count = len(document_ids(gold))

    diagnostics_path = None
    with ExitStack() as stack:
        if sink is None and config.run_settings.diagnostics_path:
            diagnostics_path = config.run_settings.diagnostics_path
            sink = stack.enter_context(TsvDiagnosticSink(diagnostics_path))

        evaluations = []
        for backend_config in config.backends:
            if on_backend_start is not None:
                on_backend_start(backend_config.name, document_count)
            evaluation = await evaluate_backend(
                backend_config, config, gold, sink, on_document_done
            )
            log_with_context(
                logger,
                logging.INFO,
                f"Scored backend {evaluation.name}",
                context={
                    "backend": evaluation.name,
                    "documents": evaluation.extraction.total,
                    "failures": len(evaluation.extraction.failures),
                    "metrics": len(evaluation.scores),
                },
                run_id=run_id,
            )
            evaluations.append(evaluation)

    baseline = evaluations[0]
    comparisons = {
        variant.name: compare(baseline.scores, variant.scores) for variant in evaluations[1:]
    }

    logger.info(f"Evaluation {run_id} complete")
    return EvaluationRun(
        run_id=run_id,
        timestamp_utc=timestamp_utc,
        metric_names=metrics.names(),
        document_count=document_count,
        backends=evaluations,
        comparisons=comparisons,
        diagnostics_path=diagnostics_path,
    )
