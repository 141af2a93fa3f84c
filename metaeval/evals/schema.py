"""
Core value types for the evaluation engine.

This module defines the immutable records that flow through an evaluation:
- ComparableItem: canonical form used for matching + original form for diagnostics
- BibRecord: one bibliography entry
- Mention: one in-text citation occurrence
- ExtractedMetadata: everything a backend extracted from one document
- EvalContext: identity of the (metric, document) pair being scored

All types are frozen dataclasses. ExtractedMetadata instances are produced
once per (backend, document) and never mutated; comparable items are derived
from them fresh for every (metric, document) evaluation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

if TYPE_CHECKING:
    from .registry import Metric

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ComparableItem(Generic[T]):
    """
    A value prepared for comparison that remembers what it looked like before.

    Equality and hashing use only ``canonical``, so two items are the same set
    member whenever their canonical forms match, however different their
    originals are. ``original`` is only ever shown to humans in diagnostics.

    Example:
        >>> a = ComparableItem("deep learning", "Deep Learning")
        >>> b = ComparableItem("deep learning", "DEEP LEARNING")
        >>> a == b
        True
        >>> len({a, b})
        1
    """

    canonical: T
    original: str = field(compare=False)

    @classmethod
    def create(cls, value: T) -> ComparableItem[T]:
        """Wrap a value, using its string form as the original."""
        return cls(value, str(value))

    def map(self, f: Callable[[T], T]) -> ComparableItem[T]:
        """Transform the canonical form, keeping the original."""
        return ComparableItem(f(self.canonical), self.original)


def to_items(values: Iterable[T]) -> list[ComparableItem[T]]:
    """Wrap every value with ComparableItem.create."""
    return [ComparableItem.create(value) for value in values]


@dataclass(frozen=True)
class BibRecord:
    """
    One entry of a document's bibliography.

    Equality is structural over title, authors, venue and year.
    ``cite_regex`` and ``short_cite_regex`` are backend-specific matching aids
    that gold rows never carry, so they are excluded from comparison and left
    untouched by normalization.
    """

    title: str
    authors: tuple[str, ...]
    venue: str
    year: int
    cite_regex: str | None = field(default=None, compare=False)
    short_cite_regex: str | None = field(default=None, compare=False)

    def __post_init__(self):
        # Accept lists from callers but store a hashable tuple
        if not isinstance(self.authors, tuple):
            object.__setattr__(self, "authors", tuple(self.authors))

    def __str__(self) -> str:
        return f"{self.title}|{self.year}|{self.venue}|{':'.join(self.authors)}"


@dataclass(frozen=True)
class Mention:
    """
    A citation occurrence inside a passage of body text.

    ``start_offset``/``end_offset`` delimit the citation marker within
    ``context`` (e.g. "(Smith, 2010)").
    """

    context: str
    start_offset: int
    end_offset: int

    def __post_init__(self):
        if not 0 <= self.start_offset <= self.end_offset <= len(self.context):
            raise ValueError(
                f"Mention offsets [{self.start_offset}, {self.end_offset}) "
                f"out of range for context of length {len(self.context)}"
            )

    @property
    def text(self) -> str:
        return self.context[self.start_offset : self.end_offset]


@dataclass(frozen=True)
class ExtractedMetadata:
    """
    Metadata one backend extracted from one document.

    Attributes:
        title: Document title, or None if the backend found none
        authors: Author names in document order
        abstract_text: Abstract, or None
        references: Bibliography entries in document order
        reference_mentions: In-text citation mentions in document order
    """

    title: str | None = None
    authors: tuple[str, ...] = ()
    abstract_text: str | None = None
    references: tuple[BibRecord, ...] = ()
    reference_mentions: tuple[Mention, ...] = ()

    def __post_init__(self):
        for name in ("authors", "references", "reference_mentions"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))


class DiagnosticSink(Protocol):
    """Receives one row per unmatched item. Must tolerate concurrent writers."""

    def record(
        self,
        metric_name: str,
        error_type: str,
        document_id: str,
        item: Any,
        original: str,
    ) -> None: ...


@dataclass(frozen=True)
class EvalContext:
    """
    Identity of the (metric, document) pair being evaluated.

    Carries no state of its own; it routes diagnostics for unmatched items to
    the sink (or the debug log when there is none).
    """

    metric: Metric
    document_id: str
    sink: DiagnosticSink | None = None

    def error(self, error_type: str, item: ComparableItem[Any]) -> None:
        if self.sink is None:
            logger.debug(
                f"{self.metric.name} {error_type} error on {self.document_id}: "
                f"{item.canonical!r} (original: {item.original!r})"
            )
            return
        self.sink.record(
            self.metric.name, error_type, self.document_id, item.canonical, item.original
        )

    def errors(self, error_type: str, items: Iterable[ComparableItem[Any]]) -> None:
        # Sets have no stable order; sort so diagnostics diff cleanly between runs
        for item in sorted(items, key=lambda i: str(i.canonical)):
            self.error(error_type, item)
