"""
Shared fixtures for metaeval tests.

Most integration-style tests need a small evaluation project on disk: gold
TSVs, one corpus per backend and a metaeval.yaml pointing at them with
relative paths. make_project builds one under tmp_path.
"""

import json

import pytest
import yaml

from metaeval.evals.diagnostics import InMemoryDiagnosticSink
from metaeval.evals.schema import BibRecord, ExtractedMetadata, Mention
from metaeval.utils.console import output_mode

TITLE_GOLD_ROWS = ["doc1\tDeep Learning", "doc2\tGraph Networks"]

BASELINE_DOCUMENTS = {
    "doc1": {"title": "Deep Learning"},
    "doc2": {"title": "Graph Networks"},
}

# doc1 differs from gold only in case; doc2 was never extracted
VARIANT_DOCUMENTS = {
    "doc1": {"title": "deep learning"},
}


@pytest.fixture
def sample_metadata():
    """One fully populated extraction."""
    return ExtractedMetadata(
        title="Deep Learning",
        authors=("Yann LeCun", "Yoshua Bengio"),
        abstract_text="Deep learning allows computational models to learn representations.",
        references=(
            BibRecord(
                title="Gradient-based learning applied to document recognition",
                authors=("Yann LeCun", "Leon Bottou"),
                venue="Proceedings of the IEEE",
                year=1998,
            ),
        ),
        reference_mentions=(Mention("as shown (LeCun, 1998) before", 9, 22),),
    )


@pytest.fixture
def memory_sink():
    return InMemoryDiagnosticSink()


@pytest.fixture
def reset_output_mode():
    """Reset global output_mode to default state after each test."""
    original_format = output_mode.format
    original_quiet = output_mode.quiet
    output_mode._json_buffer.clear()

    yield

    output_mode.format = original_format
    output_mode.quiet = original_quiet
    output_mode._json_buffer.clear()


def write_corpus(directory, documents):
    directory.mkdir(parents=True, exist_ok=True)
    for document_id, payload in documents.items():
        (directory / f"{document_id}.json").write_text(json.dumps(payload), encoding="utf-8")


@pytest.fixture
def make_project(tmp_path):
    """
    Factory writing a two-backend project and returning its config path.

    Both backends use the json plugin. The baseline extracts every title
    exactly; the variant (by default) lower-cases doc1 and misses doc2.
    """

    def _make(
        gold_rows=None,
        baseline_documents=None,
        variant_documents=None,
        metrics=("title", "titleNormalized"),
        enforce_health=False,
        health=None,
        run_settings=None,
    ):
        gold_file = tmp_path / "golddata" / "dblp" / "title.tsv"
        gold_file.parent.mkdir(parents=True, exist_ok=True)
        rows = TITLE_GOLD_ROWS if gold_rows is None else gold_rows
        gold_file.write_text("\n".join(rows) + "\n", encoding="utf-8")

        write_corpus(
            tmp_path / "baseline",
            BASELINE_DOCUMENTS if baseline_documents is None else baseline_documents,
        )
        write_corpus(
            tmp_path / "variant",
            VARIANT_DOCUMENTS if variant_documents is None else variant_documents,
        )

        config = {
            "run_settings": {"diagnostics_path": "out/MetaEvalErrors.tsv", **(run_settings or {})},
            "gold": {"directory": "golddata"},
            "backends": [
                {
                    "name": "baseline",
                    "plugin": "json",
                    "corpus": {"directory": "baseline", "suffix": ".json"},
                    "enforce_health": enforce_health,
                },
                {
                    "name": "variant",
                    "plugin": "json",
                    "corpus": {"directory": "variant", "suffix": ".json"},
                    "enforce_health": enforce_health,
                },
            ],
        }
        if metrics is not None:
            config["metrics"] = list(metrics)
        if health is not None:
            config["health"] = health

        config_path = tmp_path / "metaeval.yaml"
        config_path.write_text(yaml.safe_dump(config), encoding="utf-8")
        return config_path

    return _make
