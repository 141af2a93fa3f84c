"""
Diagnostic sinks for unmatched items.

Every precision or recall miss found while scoring is reported as one row
so a human can inspect what each backend got wrong. The TSV sink writes the
classic ``MetaEvalErrors.tsv`` layout, with a leading Backend column so the
rows of several backends can share one file.

Both sinks are safe under concurrent writers: many documents can report
errors at the same time.
"""

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

logger = logging.getLogger(__name__)

TSV_HEADER = ("Backend", "Metric", "Error type", "Paper ID", "Item", "Original")
_CONTROL_RE = re.compile(r"[\t\r\n]")


def _clean_field(value: Any) -> str:
    # Tabs or newlines inside an item would shift every column after it
    return _CONTROL_RE.sub(" ", str(value))


@dataclass(frozen=True)
class DiagnosticRecord:
    backend: str
    metric_name: str
    error_type: str
    document_id: str
    item: Any
    original: str


class BackendSinkView:
    """DiagnosticSink that stamps every row with one backend name."""

    def __init__(self, parent: "TsvDiagnosticSink | InMemoryDiagnosticSink", backend: str):
        self.parent = parent
        self.backend = backend

    def record(
        self,
        metric_name: str,
        error_type: str,
        document_id: str,
        item: Any,
        original: str,
    ) -> None:
        self.parent.write(
            DiagnosticRecord(self.backend, metric_name, error_type, document_id, item, original)
        )


class TsvDiagnosticSink:
    """
    Append diagnostic rows to a tab-separated file.

    Use as a context manager; the header is written on open and the file is
    flushed and closed on exit. Writes are serialized with a lock.

    Example:
        >>> with TsvDiagnosticSink("MetaEvalErrors.tsv") as sink:
        ...     run_sink = sink.for_backend("grobid")
        ...     run_sink.record("title", "recall", "paper-1", "deep learning", "Deep Learning")
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file: TextIO | None = None
        self.rows_written = 0

    def open(self) -> "TsvDiagnosticSink":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8", newline="")
        self._file.write("\t".join(TSV_HEADER) + "\n")
        logger.debug(f"Writing diagnostics to {self.path}")
        return self

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
        logger.info(f"Wrote {self.rows_written} diagnostic rows to {self.path}")

    def __enter__(self) -> "TsvDiagnosticSink":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def for_backend(self, backend: str) -> BackendSinkView:
        return BackendSinkView(self, backend)

    def write(self, row: DiagnosticRecord) -> None:
        line = "\t".join(
            _clean_field(value)
            for value in (
                row.backend,
                row.metric_name,
                row.error_type,
                row.document_id,
                row.item,
                row.original,
            )
        )
        with self._lock:
            if self._file is None:
                raise RuntimeError(f"Diagnostic sink {self.path} is not open")
            self._file.write(line + "\n")
            self.rows_written += 1


class InMemoryDiagnosticSink:
    """Collects diagnostic rows in a list. Handy for tests and library callers."""

    def __init__(self):
        self._lock = threading.Lock()
        self.records: list[DiagnosticRecord] = []

    def for_backend(self, backend: str) -> BackendSinkView:
        return BackendSinkView(self, backend)

    def write(self, row: DiagnosticRecord) -> None:
        with self._lock:
            self.records.append(row)

    def for_metric(self, metric_name: str) -> list[DiagnosticRecord]:
        with self._lock:
            return [r for r in self.records if r.metric_name == metric_name]
