"""
Precision/recall arithmetic for the evaluation framework.

This module provides the set-level scoring used by every metric:
- multiset(): make duplicate values individually matchable
- calculate_pr(): precision/recall with diagnostics for every miss
- bib_counter(): volume-only recall for bibliography counts
"""

from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from .schema import BibRecord, ComparableItem, EvalContext

RECALL_ERROR = "recall"
PRECISION_ERROR = "precision"


def multiset(items: Iterable[ComparableItem[str]]) -> set[ComparableItem[str]]:
    """
    Turn a list of items into a set that still counts repetitions.

    Each canonical value gets "#" and its zero-based occurrence index appended,
    so "a1" and the eleventh "a" stay distinct ("a1#0" vs "a#10"). If
    Etzioni is cited five times in gold and three times in the extraction,
    the three extracted copies match ``etzioni#0..2`` and ``etzioni#3..4`` are
    reported missing (precision 1.0, recall 0.6). Harmless when every value
    is already unique.

    Example:
        >>> items = [ComparableItem.create(v) for v in ["a", "a", "b"]]
        >>> sorted(i.canonical for i in multiset(items))
        ['a#0', 'a#1', 'b#0']
    """
    seen: dict[Any, int] = defaultdict(int)
    result = set()
    for item in items:
        index = seen[item.canonical]
        seen[item.canonical] += 1
        result.add(ComparableItem(f"{item.canonical}#{index}", item.original))
    return result


def calculate_pr(
    context: EvalContext,
    gold: set[ComparableItem[Any]],
    extracted: set[ComparableItem[Any]],
) -> tuple[float, float]:
    """
    Compute (precision, recall) of extracted items against gold items.

    Every gold item missing from the extraction is reported as a recall
    error and every extracted item not in gold as a precision error, each
    with its original form. Diagnostics do not change the returned numbers.

    Edge cases:
        - empty gold: precision 1.0 only if nothing was extracted; recall 1.0
        - empty extraction (non-empty gold): (0.0, 0.0)

    Args:
        context: Metric and document being scored, routes diagnostics
        gold: Gold items
        extracted: Extracted items

    Returns:
        Tuple of (precision, recall) in [0.0, 1.0]
    """
    if not gold:
        return (1.0 if not extracted else 0.0), 1.0
    if not extracted:
        return 0.0, 0.0

    context.errors(RECALL_ERROR, gold - extracted)
    context.errors(PRECISION_ERROR, extracted - gold)

    precision = sum(1 for item in extracted if item in gold) / len(extracted)
    recall = sum(1 for item in gold if item in extracted) / len(gold)
    return precision, recall


def bib_counter(
    context: EvalContext,
    gold: set[ComparableItem[BibRecord]],
    extracted: set[ComparableItem[BibRecord]],
) -> tuple[float, float]:
    """
    Score only how many bibliography entries were found.

    No matching is attempted, so precision is taken to be 1.0 and recall is
    ``len(extracted) / len(gold)`` (which can exceed 1.0 when the backend
    splits entries).
    """
    if not gold:
        return 1.0, (1.0 if not extracted else 0.0)
    return 1.0, len(extracted) / len(gold)
