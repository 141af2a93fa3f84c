"""
Example parser for the ``callable`` backend plugin.

metaeval calls ``parse_pdf(path)`` once per document, from worker threads.
A parser may return ExtractedMetadata or a plain dict in the same layout as
the json plugin's precomputed files (snake_case or camelCase keys).

This one reads a sidecar ``<document>.json`` written next to each PDF by an
external tool, which is enough to try the plugin without a real PDF parser.
Make the module importable before running, e.g.:

    PYTHONPATH=examples metaeval run --config examples/metaeval.yaml
"""

import json
from pathlib import Path

from metaeval.evals.schema import BibRecord, ExtractedMetadata


def parse_pdf(path: Path) -> ExtractedMetadata:
    sidecar = path.with_suffix(".json")
    with sidecar.open(encoding="utf-8") as f:
        data = json.load(f)

    return ExtractedMetadata(
        title=data.get("title"),
        authors=tuple(data.get("authors") or ()),
        abstract_text=data.get("abstract"),
        references=tuple(
            BibRecord(
                title=ref.get("title") or "",
                authors=tuple(ref.get("authors") or ()),
                venue=ref.get("venue") or "",
                year=int(ref.get("year") or 0),
            )
            for ref in data.get("references") or ()
        ),
    )


def parse_pdf_as_dict(path: Path) -> dict:
    """Same as parse_pdf, leaving validation to metaeval."""
    with path.with_suffix(".json").open(encoding="utf-8") as f:
        return json.load(f)
