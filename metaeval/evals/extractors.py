"""
Field extractors and gold-label parsers.

Each metric compares one field. An *extractor* projects ExtractedMetadata to
a list of ComparableItem; a *gold parser* turns the label strings of one gold
TSV row into the same shape. Both are pure functions so they can be bound
into evaluator pipelines by reference.

Gold parsers raise ValueError on rows they cannot interpret; the gold loader
turns that into MalformedGoldRowError at load time.
"""

import re
from collections.abc import Sequence

from .schema import BibRecord, ComparableItem, ExtractedMetadata, to_items

_PARENS_RE = re.compile(r"[()]")


def wrap_labels(labels: Sequence[str]) -> list[ComparableItem[str]]:
    """Default gold parser: every label verbatim."""
    return to_items(labels)


def _last_token(name: str) -> str:
    tokens = name.split()
    return tokens[-1] if tokens else name


def first_and_last_word(text: str) -> str:
    """
    Reduce a passage to its first and last word.

    Abstract boundaries are what extractors most often get wrong, so the
    first/last pair is a cheap proxy for "found the whole abstract".

    Raises:
        ValueError: If text contains no words
    """
    words = text.split()
    if not words:
        raise ValueError("cannot take first and last word of empty text")
    return f"{words[0]} {words[-1]}"


# ============================================================================
# Document-level fields
# ============================================================================


def full_name_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(metadata.authors)


def last_name_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(_last_token(author) for author in metadata.authors)


def gold_last_name_extractor(labels: Sequence[str]) -> list[ComparableItem[str]]:
    return to_items(_last_token(label) for label in labels)


def title_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    if metadata.title is None:
        return []
    return [ComparableItem.create(metadata.title)]


def gold_title_extractor(labels: Sequence[str]) -> list[ComparableItem[str]]:
    return [ComparableItem.create(labels[0])] if labels else []


def abstract_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    text = metadata.abstract_text
    if text is None or not text.strip():
        return []
    return [ComparableItem(first_and_last_word(text), text)]


def gold_abstract_extractor(labels: Sequence[str]) -> list[ComparableItem[str]]:
    if not labels or not labels[0].strip():
        raise ValueError("abstract row has no abstract text")
    return [ComparableItem(first_and_last_word(labels[0]), labels[0])]


# ============================================================================
# Bibliography fields
# ============================================================================


def bib_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[BibRecord]]:
    return to_items(metadata.references)


def parse_gold_bib_record(row: str) -> BibRecord:
    """
    Parse one ``title|year|venue|author:author:...`` gold bibliography entry.

    Raises:
        ValueError: If the entry does not have exactly four fields or the
            year is not an integer
    """
    fields = row.split("|")
    if len(fields) != 4:
        raise ValueError(
            f"expected 4 pipe-delimited fields (title|year|venue|authors), "
            f"got {len(fields)}: {row!r}"
        )
    title, year, venue, authors = fields
    try:
        parsed_year = int(year)
    except ValueError:
        raise ValueError(f"bibliography year is not an integer: {year!r}") from None
    return BibRecord(
        title=title,
        authors=tuple(authors.split(":")),
        venue=venue,
        year=parsed_year,
    )


def gold_bib_extractor(labels: Sequence[str]) -> list[ComparableItem[BibRecord]]:
    return [ComparableItem(parse_gold_bib_record(label), label) for label in labels]


def bib_authors_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(author for record in metadata.references for author in record.authors)


def gold_bib_authors_extractor(labels: Sequence[str]) -> list[ComparableItem[str]]:
    return to_items(author for label in labels for author in label.split(":"))


def bib_titles_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(record.title for record in metadata.references)


def bib_venues_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(record.venue for record in metadata.references)


def bib_years_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    return to_items(str(record.year) for record in metadata.references)


def bib_mentions_extractor(metadata: ExtractedMetadata) -> list[ComparableItem[str]]:
    """
    Project each mention to ``context|marker``.

    Parentheses are dropped from the marker in the canonical form because
    gold mentions are annotated without them; the original keeps them.
    """
    items = []
    for mention in metadata.reference_mentions:
        marker = mention.text
        items.append(
            ComparableItem(
                f"{mention.context}|{_PARENS_RE.sub('', marker)}",
                f"{mention.context}|{marker}",
            )
        )
    return items
