"""
Tests for extraction.orchestrator - concurrent extraction and the health gate.

Backends here are small in-test fakes that record how they were called, so
no real parser is needed.
"""

import asyncio
import logging
import threading
import time

import pytest

from metaeval.evals.schema import ExtractedMetadata
from metaeval.exceptions import (
    FailureRateTooHighError,
    HealthCheckError,
    ThroughputTooLowError,
)
from metaeval.extraction.corpus import DocumentCorpus
from metaeval.extraction.orchestrator import (
    ExtractionReport,
    ProgressTracker,
    check_health,
    log_extraction_summary,
    run_extractions,
)
from metaeval.extraction.result import ExtractionFailure, ExtractionSuccess


class FakeBackend:
    """Returns the file stem as title; fails on ids listed in ``failing``."""

    def __init__(self, name="fake", failing=(), delay=0.0):
        self.name = name
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def parse(self, path):
        with self._lock:
            self.calls.append(path.stem)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if path.stem in self.failing:
                raise ValueError(f"cannot parse {path.name}")
            return ExtractedMetadata(title=path.stem)
        finally:
            with self._lock:
                self.active -= 1


class HangingBackend:
    """Blocks on ids listed in ``hanging`` until ``release`` is set."""

    def __init__(self, hanging=(), name="hanging"):
        self.name = name
        self.hanging = set(hanging)
        self.release = threading.Event()

    def parse(self, path):
        if path.stem in self.hanging:
            self.release.wait(10)
        return ExtractedMetadata(title=path.stem)


@pytest.fixture
def corpus(tmp_path):
    for i in range(6):
        (tmp_path / f"doc{i}.pdf").write_bytes(b"%PDF-1.4")
    return DocumentCorpus(tmp_path)


def make_report(successes=0, failures=(), elapsed=1.0, backend="sp"):
    results = {f"ok{i}": ExtractionSuccess(ExtractedMetadata()) for i in range(successes)}
    for i, error_type in enumerate(failures):
        results[f"bad{i}"] = ExtractionFailure(error_type, "boom")
    return ExtractionReport(backend=backend, results=results, elapsed_seconds=elapsed)


class TestRunExtractions:
    """Test run_extractions() over a corpus."""

    @pytest.mark.asyncio
    async def test_every_document_extracted(self, corpus):
        backend = FakeBackend()

        report = await run_extractions(backend, corpus, [f"doc{i}" for i in range(6)])

        assert report.backend == "fake"
        assert report.total == 6
        assert report.failures == {}
        assert report.results["doc3"].metadata.title == "doc3"

    @pytest.mark.asyncio
    async def test_duplicate_ids_extracted_once(self, corpus):
        backend = FakeBackend()

        report = await run_extractions(backend, corpus, ["doc1", "doc1", "doc2"])

        assert sorted(backend.calls) == ["doc1", "doc2"]
        assert report.total == 2

    @pytest.mark.asyncio
    async def test_parse_errors_captured(self, corpus):
        backend = FakeBackend(failing={"doc2"})

        report = await run_extractions(backend, corpus, ["doc1", "doc2"])

        failure = report.results["doc2"]
        assert isinstance(failure, ExtractionFailure)
        assert failure.error_type == "ValueError"
        assert "doc2.pdf" in failure.message
        assert report.results["doc1"].ok

    @pytest.mark.asyncio
    async def test_missing_document_is_failure(self, corpus):
        report = await run_extractions(FakeBackend(), corpus, ["doc1", "nope"])

        assert report.results["nope"].error_type == "DocumentNotFoundError"
        assert len(report.failures) == 1

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, corpus):
        backend = FakeBackend(delay=0.05)

        await run_extractions(
            backend, corpus, [f"doc{i}" for i in range(6)], max_concurrent=2
        )

        assert 1 <= backend.max_active <= 2

    @pytest.mark.asyncio
    async def test_timeout_recorded_as_failure(self, corpus):
        backend = FakeBackend(delay=0.3)

        report = await run_extractions(backend, corpus, ["doc1"], timeout=0.05)

        assert report.results["doc1"].error_type == "TimeoutError"

    @pytest.mark.asyncio
    async def test_timeout_not_charged_to_waiting_documents(self, tmp_path):
        for i in range(40):
            (tmp_path / f"doc{i}.pdf").write_bytes(b"%PDF-1.4")
        backend = FakeBackend(delay=0.3)

        report = await run_extractions(
            backend,
            DocumentCorpus(tmp_path),
            [f"doc{i}" for i in range(40)],
            max_concurrent=40,
            timeout=2.0,
        )

        assert report.failures == {}
        assert backend.max_active > 32

    @pytest.mark.asyncio
    async def test_hung_parses_do_not_fail_later_documents(self, corpus):
        backend = HangingBackend(hanging={"doc0", "doc1"})
        try:
            report = await run_extractions(
                backend, corpus, [f"doc{i}" for i in range(6)], max_concurrent=2, timeout=0.2
            )
        finally:
            backend.release.set()

        assert set(report.failures) == {"doc0", "doc1"}
        assert {f.error_type for f in report.failures.values()} == {"TimeoutError"}
        assert sum(isinstance(r, ExtractionSuccess) for r in report.results.values()) == 4

    def test_run_not_held_open_by_hung_parse(self, corpus):
        backend = HangingBackend(hanging={"doc0"})
        started = time.monotonic()
        try:
            report = asyncio.run(run_extractions(backend, corpus, ["doc0"], timeout=0.1))
            elapsed = time.monotonic() - started
        finally:
            backend.release.set()

        assert report.results["doc0"].error_type == "TimeoutError"
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_on_document_done_called_per_document(self, corpus):
        done = []

        await run_extractions(
            FakeBackend(failing={"doc0"}),
            corpus,
            ["doc0", "doc1", "missing"],
            on_document_done=lambda: done.append(1),
        )

        assert len(done) == 3

    @pytest.mark.asyncio
    async def test_empty_corpus(self, corpus):
        report = await run_extractions(FakeBackend(), corpus, [])

        assert report.total == 0
        assert report.failure_rate == 0.0

    @pytest.mark.asyncio
    async def test_progress_logged(self, corpus, caplog):
        caplog.set_level(logging.INFO, logger="metaeval.extraction.orchestrator")

        await run_extractions(
            FakeBackend(name="grobid"), corpus, [f"doc{i}" for i in range(6)], progress_interval=3
        )

        assert "grobid: finished 3 documents (50%" in caplog.text
        assert "grobid: finished 6 documents (100%" in caplog.text


class TestProgressTracker:
    """Test ProgressTracker counting and logging."""

    def test_logs_every_interval(self, caplog):
        caplog.set_level(logging.INFO, logger="metaeval.extraction.orchestrator")
        now = [100.0]
        tracker = ProgressTracker(total=4, interval=2, label="sp", clock=lambda: now[0])

        tracker.increment()
        now[0] = 102.0
        tracker.increment()
        tracker.increment()

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["sp: finished 2 documents (50%, 1.00 dps) ..."]
        assert tracker.done == 3

    def test_interval_zero_disables_logging(self, caplog):
        caplog.set_level(logging.INFO, logger="metaeval.extraction.orchestrator")
        tracker = ProgressTracker(total=2, interval=0)

        tracker.increment()
        tracker.increment()

        assert caplog.records == []

    def test_concurrent_increments_not_lost(self):
        tracker = ProgressTracker(total=800, interval=0)

        threads = [
            threading.Thread(target=lambda: [tracker.increment() for _ in range(100)])
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.done == 800

    def test_elapsed_uses_clock(self):
        now = [5.0]
        tracker = ProgressTracker(total=1, clock=lambda: now[0])
        now[0] = 7.5

        assert tracker.elapsed() == 2.5


class TestExtractionReport:
    """Test ExtractionReport derived statistics."""

    def test_failure_rate(self):
        report = make_report(successes=3, failures=["ValueError"])
        assert report.failure_rate == 0.25

    def test_documents_per_second(self):
        assert make_report(successes=10, elapsed=4.0).documents_per_second == 2.5

    def test_zero_elapsed_is_infinite_throughput(self):
        assert make_report(successes=1, elapsed=0.0).documents_per_second == float("inf")

    def test_top_errors_most_common_first(self):
        report = make_report(
            failures=["TimeoutError", "ValueError", "ValueError", "KeyError", "ValueError"]
        )

        assert report.top_errors(2) == [("ValueError", 3), ("TimeoutError", 1)]

    def test_top_errors_empty(self):
        assert make_report(successes=2).top_errors() == []


class TestLogExtractionSummary:
    def test_logs_throughput_and_top_errors(self, caplog):
        caplog.set_level(logging.INFO, logger="metaeval.extraction.orchestrator")
        report = make_report(successes=3, failures=["ValueError"], elapsed=2.0, backend="grobid")

        log_extraction_summary(report)

        assert "grobid: finished 4 documents at 2.00 documents per second" in caplog.text
        assert "grobid: failed 1 times (25.00%)" in caplog.text
        assert "1\tValueError" in caplog.text

    def test_no_top_errors_without_failures(self, caplog):
        caplog.set_level(logging.INFO, logger="metaeval.extraction.orchestrator")

        log_extraction_summary(make_report(successes=2))

        assert "top errors" not in caplog.text


class TestCheckHealth:
    """Test check_health() gate."""

    def test_healthy_run_passes(self):
        check_health(
            make_report(successes=99, failures=["ValueError"], elapsed=10.0),
            min_documents_per_second=1.0,
            max_failure_rate=0.05,
        )

    def test_throughput_must_exceed_floor(self):
        report = make_report(successes=10, elapsed=10.0)

        with pytest.raises(ThroughputTooLowError) as exc_info:
            check_health(report, min_documents_per_second=1.0, max_failure_rate=0.05)

        assert exc_info.value.backend == "sp"
        assert exc_info.value.observed == 1.0
        assert exc_info.value.limit == 1.0

    def test_failure_rate_must_stay_below_ceiling(self):
        report = make_report(successes=19, failures=["ValueError"], elapsed=1.0)

        with pytest.raises(FailureRateTooHighError) as exc_info:
            check_health(report, min_documents_per_second=1.0, max_failure_rate=0.05)

        assert exc_info.value.observed == 0.05

    def test_failure_rate_not_checked_without_failures(self):
        check_health(
            make_report(successes=5, elapsed=1.0),
            min_documents_per_second=1.0,
            max_failure_rate=1.0,
        )

    def test_throughput_checked_first(self):
        report = make_report(failures=["ValueError"], elapsed=10.0)

        with pytest.raises(ThroughputTooLowError):
            check_health(report, min_documents_per_second=1.0, max_failure_rate=0.05)

    def test_empty_run_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger="metaeval.extraction.orchestrator")

        check_health(make_report(), min_documents_per_second=1.0, max_failure_rate=0.05)

        assert "skipping health check" in caplog.text

    def test_errors_share_base_class(self):
        with pytest.raises(HealthCheckError):
            check_health(
                make_report(successes=1, elapsed=10.0),
                min_documents_per_second=1.0,
                max_failure_rate=0.05,
            )
