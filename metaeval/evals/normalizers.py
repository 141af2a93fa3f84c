"""
String and record normalizers bound into evaluator pipelines.

A normalizer maps a canonical value to the form used for matching. Raw
metrics use ``identity``; their "Normalized" twins use one of the others so
that case, accents and punctuation do not count as extraction errors.

Example:
    >>> normalize("  Déjà-Vu:  A Study ")
    'deja vu a study'
    >>> strict_normalize("Deep Learning (2nd ed.)")
    'deeplearning2nded'
    >>> mention_normalize("Foo (Bar)|Bar")
    'foobar|bar'
"""

import re
import unicodedata
from dataclasses import replace
from typing import TypeVar

from .schema import BibRecord

T = TypeVar("T")

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALPHANUMERIC_RE = re.compile(r"[^a-z0-9]")


def identity(value: T) -> T:
    return value


def normalize(text: str) -> str:
    """
    General-purpose text normalizer for titles, names and venues.

    Folds accents (NFKD, combining marks dropped), case-folds, turns
    punctuation into spaces and collapses whitespace.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    spaced = _PUNCTUATION_RE.sub(" ", folded)
    return _WHITESPACE_RE.sub(" ", spaced).strip()


def strict_normalize(text: str) -> str:
    """Lower-case and drop everything that is not an ASCII letter or digit."""
    return _NON_ALPHANUMERIC_RE.sub("", text.lower())


def mention_normalize(text: str) -> str:
    """
    Strictly normalize each ``|``-separated part of a mention independently.

    Minor differences in whitespace or inline math inside a citation context
    should not turn a correct mention into a miss.
    """
    return "|".join(strict_normalize(part) for part in text.split("|"))


def normalize_bib_record(record: BibRecord) -> BibRecord:
    """Apply ``normalize`` to title, authors and venue; leave year and regexes alone."""
    return replace(
        record,
        title=normalize(record.title),
        authors=tuple(normalize(author) for author in record.authors),
        venue=normalize(record.venue),
    )
