"""
Metric definitions and the metric registry.

A Metric binds a name, the gold TSV it is scored against, and an evaluator
pipeline. The built-in table below is the full set of comparisons run by
default; each raw metric has a "Normalized" twin that forgives case,
accents and punctuation.

Example:
    >>> registry = default_registry()
    >>> "titleNormalized" in registry
    True
    >>> registry.get("bibYears").gold_file
    'isaac/bib-years.tsv'
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from metaeval.exceptions import MetricRegistryError

from .extractors import (
    abstract_extractor,
    bib_authors_extractor,
    bib_extractor,
    bib_mentions_extractor,
    bib_titles_extractor,
    bib_venues_extractor,
    bib_years_extractor,
    full_name_extractor,
    gold_abstract_extractor,
    gold_bib_authors_extractor,
    gold_bib_extractor,
    gold_last_name_extractor,
    gold_title_extractor,
    last_name_extractor,
    title_extractor,
)
from .metrics import bib_counter
from .normalizers import mention_normalize, normalize, normalize_bib_record
from .pipelines import Evaluator, GenericEvaluator, StringEvaluator
from .schema import DiagnosticSink, EvalContext, ExtractedMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metric:
    """
    One named comparison between extracted metadata and gold labels.

    Attributes:
        name: Unique metric name (e.g. "authorLastNameNormalized")
        gold_file: Gold TSV path, relative to the gold directory
        evaluator: Pipeline returning (precision, recall) for one document
    """

    name: str
    gold_file: str
    evaluator: Evaluator

    def evaluate(
        self,
        metadata: ExtractedMetadata,
        document_id: str,
        gold_labels: Sequence[str],
        sink: DiagnosticSink | None = None,
    ) -> tuple[float, float]:
        context = EvalContext(self, document_id, sink)
        return self.evaluator(context, metadata, gold_labels)

    def check_gold(self, gold_labels: Sequence[str]) -> None:
        """Raise ValueError if this metric cannot interpret the gold labels."""
        self.evaluator.check_gold(gold_labels)


class MetricRegistry:
    """
    Ordered catalog of metrics keyed by name.

    Unlike backend plugins, metrics are registered per instance so a run can
    score a custom subset without touching global state.
    """

    def __init__(self, metrics: Iterable[Metric] = ()):
        self._metrics: dict[str, Metric] = {}
        for metric in metrics:
            self.register(metric)

    def register(self, metric: Metric) -> Metric:
        if metric.name in self._metrics:
            raise MetricRegistryError(f"Metric '{metric.name}' is already registered")
        self._metrics[metric.name] = metric
        logger.debug(f"Registered metric: {metric.name} ({metric.gold_file})")
        return metric

    def get(self, name: str) -> Metric:
        if name not in self._metrics:
            available = ", ".join(self._metrics) if self._metrics else "none"
            raise MetricRegistryError(
                f"Unknown metric: '{name}'. Available metrics: {available}"
            )
        return self._metrics[name]

    def names(self) -> list[str]:
        return list(self._metrics)

    def select(self, names: Iterable[str]) -> "MetricRegistry":
        """
        Build a registry holding only the named metrics, in the order given.

        Raises:
            MetricRegistryError: If any name is unknown or repeated
        """
        return MetricRegistry(self.get(name) for name in names)

    def __iter__(self) -> Iterator[Metric]:
        return iter(self._metrics.values())

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics


# ============================================================================
# Built-in metrics
# ============================================================================

DBLP_AUTHOR_FULL_NAME = "dblp/authorFullName.tsv"
DBLP_AUTHOR_LAST_NAME = "dblp/authorLastName.tsv"
DBLP_TITLE = "dblp/title.tsv"
ISAAC_ABSTRACTS = "isaac/abstracts.tsv"
ISAAC_BIBLIOGRAPHIES = "isaac/bibliographies.tsv"
ISAAC_BIB_AUTHORS = "isaac/bib-authors.tsv"
ISAAC_BIB_TITLES = "isaac/bib-titles.tsv"
ISAAC_BIB_VENUES = "isaac/bib-venues.tsv"
ISAAC_BIB_YEARS = "isaac/bib-years.tsv"
ISAAC_MENTIONS = "isaac/mentions.tsv"


def _string_pair(
    name: str, gold_file: str, normalizer=normalize, **kwargs
) -> list[Metric]:
    """A raw metric and its normalized twin sharing one extractor config."""
    return [
        Metric(name, gold_file, StringEvaluator(**kwargs)),
        Metric(
            f"{name}Normalized",
            gold_file,
            StringEvaluator(normalizer=normalizer, **kwargs),
        ),
    ]


BUILTIN_METRICS: tuple[Metric, ...] = (
    *_string_pair("authorFullName", DBLP_AUTHOR_FULL_NAME, extract=full_name_extractor),
    *_string_pair(
        "authorLastName",
        DBLP_AUTHOR_LAST_NAME,
        extract=last_name_extractor,
        extract_gold=gold_last_name_extractor,
    ),
    *_string_pair(
        "title",
        DBLP_TITLE,
        extract=title_extractor,
        extract_gold=gold_title_extractor,
    ),
    *_string_pair(
        "abstract",
        ISAAC_ABSTRACTS,
        extract=abstract_extractor,
        extract_gold=gold_abstract_extractor,
    ),
    Metric(
        "bibAll",
        ISAAC_BIBLIOGRAPHIES,
        GenericEvaluator(extract=bib_extractor, extract_gold=gold_bib_extractor),
    ),
    Metric(
        "bibAllNormalized",
        ISAAC_BIBLIOGRAPHIES,
        GenericEvaluator(
            extract=bib_extractor,
            extract_gold=gold_bib_extractor,
            normalizer=normalize_bib_record,
        ),
    ),
    Metric(
        "bibCounts",
        ISAAC_BIBLIOGRAPHIES,
        GenericEvaluator(
            extract=bib_extractor,
            extract_gold=gold_bib_extractor,
            pr_calculator=bib_counter,
        ),
    ),
    *_string_pair(
        "bibAuthors",
        ISAAC_BIB_AUTHORS,
        extract=bib_authors_extractor,
        extract_gold=gold_bib_authors_extractor,
    ),
    *_string_pair("bibTitles", ISAAC_BIB_TITLES, extract=bib_titles_extractor),
    *_string_pair("bibVenues", ISAAC_BIB_VENUES, extract=bib_venues_extractor),
    # Year 0 is what backends emit for "no year found"
    Metric(
        "bibYears",
        ISAAC_BIB_YEARS,
        StringEvaluator(extract=bib_years_extractor, disallow=frozenset({"0"})),
    ),
    *_string_pair(
        "bibMentions",
        ISAAC_MENTIONS,
        normalizer=mention_normalize,
        extract=bib_mentions_extractor,
    ),
)


def default_registry() -> MetricRegistry:
    """Registry preloaded with every built-in metric."""
    return MetricRegistry(BUILTIN_METRICS)
