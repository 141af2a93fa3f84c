"""
Tests for evals.gold - gold TSV reading and per-metric gold records.
"""

import pytest

import metaeval.evals.gold as gold_module
from metaeval.evals.gold import GoldRecord, document_ids, load_gold_data, read_gold_rows
from metaeval.evals.registry import default_registry
from metaeval.exceptions import GoldDataError, MalformedGoldRowError


@pytest.fixture
def gold_dir(tmp_path):
    directory = tmp_path / "golddata"
    (directory / "dblp").mkdir(parents=True)
    (directory / "isaac").mkdir(parents=True)
    return directory


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestReadGoldRows:
    """Test read_gold_rows() line handling."""

    def test_rows_trimmed_and_split(self, gold_dir):
        path = write(gold_dir / "dblp" / "title.tsv", "doc1\t Deep Learning \t x\n  doc2\tGraphs  \n")

        rows = read_gold_rows(path)

        assert rows == [
            (1, "doc1", ("Deep Learning", "x")),
            (2, "doc2", ("Graphs",)),
        ]

    def test_blank_lines_skipped_line_numbers_kept(self, gold_dir):
        path = write(gold_dir / "t.tsv", "\ndoc1\tA\n   \n\ndoc2\tB\n")

        rows = read_gold_rows(path)

        assert [(n, doc) for n, doc, _ in rows] == [(2, "doc1"), (5, "doc2")]

    def test_row_without_labels(self, gold_dir):
        path = write(gold_dir / "t.tsv", "doc1\n")
        assert read_gold_rows(path) == [(1, "doc1", ())]

    def test_max_documents_counts_rows_not_lines(self, gold_dir):
        path = write(gold_dir / "t.tsv", "\n".join(["", "d1\ta", "", "d2\tb", "d3\tc"]))

        rows = read_gold_rows(path, max_documents=2)

        assert [doc for _, doc, _ in rows] == ["d1", "d2"]

    def test_missing_file(self, gold_dir):
        with pytest.raises(GoldDataError, match="not found"):
            read_gold_rows(gold_dir / "missing.tsv")

    def test_undecodable_file(self, gold_dir):
        path = gold_dir / "bad.tsv"
        path.write_bytes(b"doc1\t\xff\xfe\xfa\n")

        with pytest.raises(GoldDataError, match="Failed to read"):
            read_gold_rows(path)


class TestLoadGoldData:
    """Test load_gold_data() across metrics."""

    def test_records_per_metric(self, gold_dir):
        write(gold_dir / "dblp" / "title.tsv", "doc1\tDeep Learning\ndoc2\tGraphs\n")
        metrics = default_registry().select(["title", "titleNormalized"])

        records = load_gold_data(metrics, gold_dir)

        assert [(r.metric.name, r.document_id) for r in records] == [
            ("title", "doc1"),
            ("title", "doc2"),
            ("titleNormalized", "doc1"),
            ("titleNormalized", "doc2"),
        ]
        assert records[0].labels == ("Deep Learning",)

    def test_shared_file_read_once(self, gold_dir, monkeypatch):
        write(gold_dir / "isaac" / "bibliographies.tsv", "doc1\tT|2000|V|A\n")
        metrics = default_registry().select(["bibAll", "bibAllNormalized", "bibCounts"])
        calls = []

        original = gold_module.read_gold_rows

        def counting_read(path, max_documents):
            calls.append(path)
            return original(path, max_documents)

        monkeypatch.setattr(gold_module, "read_gold_rows", counting_read)

        records = load_gold_data(metrics, gold_dir)

        assert len(records) == 3
        assert len(calls) == 1

    def test_file_override(self, gold_dir, tmp_path):
        override = write(tmp_path / "my-titles.tsv", "docX\tCustom\n")
        write(gold_dir / "dblp" / "title.tsv", "doc1\tDefault\n")
        metrics = default_registry().select(["title"])

        records = load_gold_data(metrics, gold_dir, files={"title": str(override)})

        assert [r.document_id for r in records] == ["docX"]

    def test_max_documents_applies_per_file(self, gold_dir):
        write(gold_dir / "dblp" / "title.tsv", "d1\ta\nd2\tb\nd3\tc\n")
        metrics = default_registry().select(["title"])

        records = load_gold_data(metrics, gold_dir, max_documents=2)

        assert len(records) == 2

    def test_malformed_bibliography_row(self, gold_dir):
        path = write(
            gold_dir / "isaac" / "bibliographies.tsv",
            "doc1\tT|2000|V|A\n\ndoc2\tT|2000|V\n",
        )
        metrics = default_registry().select(["bibAll"])

        with pytest.raises(MalformedGoldRowError) as exc_info:
            load_gold_data(metrics, gold_dir)

        assert exc_info.value.line_number == 3
        assert exc_info.value.path == path
        assert f"{path}:3: bibAll:" in str(exc_info.value)

    def test_blank_abstract_row_rejected(self, gold_dir):
        write(gold_dir / "isaac" / "abstracts.tsv", "doc1\n")
        metrics = default_registry().select(["abstract"])

        with pytest.raises(MalformedGoldRowError, match="no abstract text"):
            load_gold_data(metrics, gold_dir)

    def test_missing_gold_file(self, gold_dir):
        with pytest.raises(GoldDataError):
            load_gold_data(default_registry().select(["title"]), gold_dir)


def test_document_ids_deduplicated():
    metric = default_registry().get("title")
    records = [
        GoldRecord(metric, "doc1", ()),
        GoldRecord(metric, "doc2", ()),
        GoldRecord(metric, "doc1", ()),
    ]

    assert document_ids(records) == {"doc1", "doc2"}
