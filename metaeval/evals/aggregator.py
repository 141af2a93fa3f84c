"""
Aggregate per-document scores into per-metric averages and compare backends.

For every gold record the document's extraction result is looked up: a
success is scored with the metric's evaluator, a failure (or a document the
backend never returned) counts as precision = recall = 0.0. Precision and
recall are then averaged independently per metric over every document with
gold data for that metric.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from metaeval.extraction.result import ExtractionResult, ExtractionSuccess

from .gold import GoldRecord
from .schema import DiagnosticSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricScore:
    metric_name: str
    precision: float
    recall: float
    sample_count: int


@dataclass(frozen=True)
class MetricComparison:
    """
    One metric scored for a baseline backend and a variant backend.

    Differences are signed ``baseline - variant``: positive means the
    baseline did better.
    """

    metric_name: str
    baseline: MetricScore
    variant: MetricScore

    @property
    def precision_diff(self) -> float:
        return self.baseline.precision - self.variant.precision

    @property
    def recall_diff(self) -> float:
        return self.baseline.recall - self.variant.recall


def score_document(
    record: GoldRecord,
    result: ExtractionResult | None,
    sink: DiagnosticSink | None = None,
) -> tuple[float, float]:
    """Score one gold record against one document's extraction result."""
    if result is None:
        logger.warning(
            f"No extraction result for document {record.document_id}; "
            f"scoring {record.metric.name} as 0.0/0.0"
        )
        return 0.0, 0.0
    if not isinstance(result, ExtractionSuccess):
        return 0.0, 0.0
    return record.metric.evaluate(result.metadata, record.document_id, record.labels, sink)


def compute_pr(
    gold_records: Iterable[GoldRecord],
    extractions: Mapping[str, ExtractionResult],
    sink: DiagnosticSink | None = None,
) -> list[MetricScore]:
    """
    Average precision and recall per metric.

    Args:
        gold_records: Gold rows to score
        extractions: Extraction result per document id
        sink: Receives a row for every unmatched item

    Returns:
        MetricScores sorted by metric name

    Example:
        >>> scores = compute_pr(gold, {"doc-1": ExtractionSuccess(metadata)})
        >>> scores[0]
        MetricScore(metric_name='title', precision=1.0, recall=1.0, sample_count=1)
    """
    per_metric: dict[str, list[tuple[float, float]]] = defaultdict(list)
    for record in gold_records:
        result = extractions.get(record.document_id)
        per_metric[record.metric.name].append(score_document(record, result, sink))

    scores = []
    for name in sorted(per_metric):
        pairs = per_metric[name]
        precisions = [p for p, _ in pairs]
        recalls = [r for _, r in pairs]
        scores.append(
            MetricScore(
                metric_name=name,
                precision=sum(precisions) / len(precisions),
                recall=sum(recalls) / len(recalls),
                sample_count=len(pairs),
            )
        )
    return scores


def compare(
    baseline: Sequence[MetricScore], variant: Sequence[MetricScore]
) -> list[MetricComparison]:
    """
    Join two backends' scores by metric name.

    Metrics scored for only one of the backends are skipped with a warning;
    the result keeps the baseline's order.
    """
    variant_by_name = {score.metric_name: score for score in variant}
    comparisons = []
    for score in baseline:
        other = variant_by_name.get(score.metric_name)
        if other is None:
            logger.warning(f"Metric {score.metric_name} missing from variant scores")
            continue
        comparisons.append(MetricComparison(score.metric_name, score, other))
    return comparisons
