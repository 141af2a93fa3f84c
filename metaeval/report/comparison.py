"""
Comparison report rendering.

Two renderings of the same data:
- format_comparison_table(): the fixed-width plain-text table, one column
  pair per backend plus the signed difference, suitable for logs and
  terminals without colour
- run_to_dict(): a JSON-serializable summary for agent mode
"""

import math
from collections.abc import Sequence
from typing import Any

from metaeval.evals.aggregator import MetricComparison

SEPARATOR = (
    "-----------------------------------------+--------+"
    "------------------+--------+-----------------"
)


def format_comparison_table(
    baseline: str, variant: str, comparisons: Sequence[MetricComparison]
) -> str:
    """
    Render a baseline/variant comparison as a fixed-width text table.

    Differences are ``baseline - variant``. Backend names longer than the
    column are truncated so the columns stay aligned.

    Example:
        >>> print(format_comparison_table("SP", "Grobid", comparisons))
        EVALUATION RESULTS                               PRECISION                      RECALL    SAMPLE
                                              SP | Grobid |   diff        SP | Grobid |   diff      SIZE
        -----------------------------------------+--------+------------------+--------+-----------------
        title                              0.912 |  0.874 | +0.038     0.912 |  0.874 | +0.038       998
    """
    left, right = baseline[:10], variant[:6]
    lines = [
        f"{'EVALUATION RESULTS':<30}{'PRECISION':>28}{'RECALL':>28}{'SAMPLE':>10}",
        f"{'':<30}{left:>10} | {right:>6} | {'diff':>6}{left:>10} | {right:>6} | {'diff':>6}{'SIZE':>10}",
        SEPARATOR,
    ]
    for c in comparisons:
        lines.append(
            f"{c.metric_name:<30}"
            f"{c.baseline.precision:10.3f} | {c.variant.precision:6.3f} | {c.precision_diff:+5.3f}"
            f"{c.baseline.recall:10.3f} | {c.variant.recall:6.3f} | {c.recall_diff:+5.3f}"
            f"{c.baseline.sample_count:10d}"
        )
    return "\n".join(lines)


def _finite(value: float) -> float | None:
    # JSON has no infinity
    return value if math.isfinite(value) else None


def run_to_dict(run) -> dict[str, Any]:
    """
    Summarize an EvaluationRun as plain JSON-serializable data.

    Example:
        >>> data = run_to_dict(run)
        >>> data["comparisons"]["grobid"][0]["precision_diff"]
        0.038
    """
    return {
        "run_id": run.run_id,
        "timestamp_utc": run.timestamp_utc,
        "document_count": run.document_count,
        "metrics": list(run.metric_names),
        "baseline": run.baseline.name,
        "diagnostics_path": run.diagnostics_path,
        "backends": [
            {
                "name": evaluation.name,
                "documents": evaluation.extraction.total,
                "failures": len(evaluation.extraction.failures),
                "failure_rate": round(evaluation.extraction.failure_rate, 6),
                "documents_per_second": _finite(evaluation.extraction.documents_per_second),
                "top_errors": [
                    {"error_type": error_type, "count": count}
                    for error_type, count in evaluation.extraction.top_errors()
                ],
                "scores": [
                    {
                        "metric": score.metric_name,
                        "precision": round(score.precision, 6),
                        "recall": round(score.recall, 6),
                        "sample_count": score.sample_count,
                    }
                    for score in evaluation.scores
                ],
            }
            for evaluation in run.backends
        ],
        "comparisons": {
            variant: [
                {
                    "metric": c.metric_name,
                    "precision_diff": round(c.precision_diff, 6),
                    "recall_diff": round(c.recall_diff, 6),
                }
                for c in comparisons
            ]
            for variant, comparisons in run.comparisons.items()
        },
    }
