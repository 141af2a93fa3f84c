"""
Evaluator pipelines: configuration records that score one document.

An evaluator is any callable ``(EvalContext, ExtractedMetadata, gold labels)
-> (precision, recall)``. Two configurable pipelines cover every built-in
metric:

- StringEvaluator: normalize -> drop disallowed values -> multiset -> PR
- GenericEvaluator: normalize structured values -> set -> PR

Both are frozen dataclasses holding plain function references, so a metric
table is just data. ``check_gold`` lets the gold loader reject rows a
pipeline could never parse before any extraction runs.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from .extractors import wrap_labels
from .metrics import calculate_pr, multiset
from .normalizers import identity
from .schema import ComparableItem, EvalContext, ExtractedMetadata

T = TypeVar("T")

PRCalculator = Callable[
    [EvalContext, set[ComparableItem[Any]], set[ComparableItem[Any]]],
    tuple[float, float],
]


class Evaluator(Protocol):
    def __call__(
        self, context: EvalContext, metadata: ExtractedMetadata, gold: Sequence[str]
    ) -> tuple[float, float]: ...

    def check_gold(self, gold: Sequence[str]) -> None: ...


@dataclass(frozen=True)
class StringEvaluator:
    """
    Evaluator for string-valued fields.

    Attributes:
        extract: Projects ExtractedMetadata to the field being scored
        extract_gold: Parses the gold labels of one row (default: verbatim)
        normalizer: Applied to canonical forms on both sides (default: identity)
        disallow: Junk values removed after normalization (default: empty string)
        pr_calculator: Scoring function (default: calculate_pr)

    Example:
        >>> evaluator = StringEvaluator(title_extractor, normalizer=normalize)
        >>> evaluator(context, metadata, ["Deep Learning"])
        (1.0, 1.0)
    """

    extract: Callable[[ExtractedMetadata], list[ComparableItem[str]]]
    extract_gold: Callable[[Sequence[str]], list[ComparableItem[str]]] = wrap_labels
    normalizer: Callable[[str], str] = identity
    disallow: frozenset[str] = frozenset({""})
    pr_calculator: PRCalculator = calculate_pr

    def clean(self, items: Iterable[ComparableItem[str]]) -> set[ComparableItem[str]]:
        # Filtering happens before grouping, so disallowed values never
        # consume an occurrence index
        normalized = (item.map(self.normalizer) for item in items)
        return multiset(item for item in normalized if item.canonical not in self.disallow)

    def check_gold(self, gold: Sequence[str]) -> None:
        self.extract_gold(gold)

    def __call__(
        self, context: EvalContext, metadata: ExtractedMetadata, gold: Sequence[str]
    ) -> tuple[float, float]:
        return self.pr_calculator(
            context,
            self.clean(self.extract_gold(gold)),
            self.clean(self.extract(metadata)),
        )


@dataclass(frozen=True)
class GenericEvaluator(Generic[T]):
    """
    Evaluator for structured values such as BibRecord.

    Like StringEvaluator without the disallow filter and multiset step:
    structured records are compared as a plain set after normalization.
    """

    extract: Callable[[ExtractedMetadata], list[ComparableItem[T]]]
    extract_gold: Callable[[Sequence[str]], list[ComparableItem[T]]]
    normalizer: Callable[[T], T] = identity
    pr_calculator: PRCalculator = calculate_pr

    def check_gold(self, gold: Sequence[str]) -> None:
        self.extract_gold(gold)

    def __call__(
        self, context: EvalContext, metadata: ExtractedMetadata, gold: Sequence[str]
    ) -> tuple[float, float]:
        gold_items = {item.map(self.normalizer) for item in self.extract_gold(gold)}
        extracted_items = {item.map(self.normalizer) for item in self.extract(metadata)}
        return self.pr_calculator(context, gold_items, extracted_items)
