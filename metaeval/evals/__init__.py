"""
Evaluation engine for extracted bibliographic metadata.

Scores one backend's ExtractedMetadata against gold labels with
normalized, multiset-aware precision/recall, and averages the scores per
metric across a corpus.
"""

from .aggregator import MetricComparison, MetricScore, compare, compute_pr
from .gold import GoldRecord, document_ids, load_gold_data
from .metrics import bib_counter, calculate_pr, multiset
from .registry import BUILTIN_METRICS, Metric, MetricRegistry, default_registry
from .schema import BibRecord, ComparableItem, ExtractedMetadata, Mention

__all__ = [
    "BibRecord",
    "ComparableItem",
    "ExtractedMetadata",
    "Mention",
    "Metric",
    "MetricRegistry",
    "BUILTIN_METRICS",
    "default_registry",
    "multiset",
    "calculate_pr",
    "bib_counter",
    "GoldRecord",
    "load_gold_data",
    "document_ids",
    "MetricScore",
    "MetricComparison",
    "compute_pr",
    "compare",
]
