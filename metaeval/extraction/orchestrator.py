"""
Concurrent extraction over a document corpus, with a corpus-level health gate.

run_extractions() parses every document with one backend under bounded
concurrency. Each parse runs in a worker thread and every fault, including
a timeout, is captured as an ExtractionFailure for that document, so a bad
PDF never aborts the run.

Once a backend has finished, check_health() asserts the run was fast enough
and failed rarely enough for its scores to be meaningful. Violations raise
HealthCheckError and abort the whole evaluation.

Example:
    >>> report = await run_extractions(backend, corpus, ids, max_concurrent=8)
    >>> log_extraction_summary(report)
    >>> check_health(report, min_documents_per_second=1.0, max_failure_rate=0.05)
"""

import asyncio
import logging
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from metaeval.evals.schema import ExtractedMetadata
from metaeval.exceptions import FailureRateTooHighError, ThroughputTooLowError

from .backends import ExtractionBackend
from .corpus import DocumentCorpus
from .result import ExtractionFailure, ExtractionResult, ExtractionSuccess

logger = logging.getLogger(__name__)


class ProgressTracker:
    """
    Shared completion counter that logs throughput every ``interval`` documents.

    ``increment`` is an atomic increment-and-read, so no completion is lost
    and each multiple of the interval is logged exactly once.
    """

    def __init__(
        self,
        total: int,
        interval: int = 50,
        label: str = "",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.interval = interval
        self.label = label
        self._clock = clock
        self._lock = threading.Lock()
        self._done = 0
        self.started_at = clock()

    @property
    def done(self) -> int:
        with self._lock:
            return self._done

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def increment(self) -> int:
        with self._lock:
            self._done += 1
            done = self._done

        if self.interval > 0 and done % self.interval == 0:
            elapsed = self.elapsed()
            speed = done / elapsed if elapsed > 0 else float("inf")
            completion = 100.0 * done / self.total if self.total else 100.0
            logger.info(
                f"{self.label}: finished {done} documents "
                f"({completion:.0f}%, {speed:.2f} dps) ..."
            )
        return done


@dataclass(frozen=True)
class ExtractionReport:
    """
    Outcome of running one backend over the corpus.

    Attributes:
        backend: Backend name
        results: Extraction result per document id
        elapsed_seconds: Wall-clock time of the whole run
    """

    backend: str
    results: dict[str, ExtractionResult]
    elapsed_seconds: float

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> dict[str, ExtractionFailure]:
        return {
            document_id: result
            for document_id, result in self.results.items()
            if isinstance(result, ExtractionFailure)
        }

    @property
    def failure_rate(self) -> float:
        """Fraction of documents that failed, in [0.0, 1.0]."""
        if not self.total:
            return 0.0
        return len(self.failures) / self.total

    @property
    def documents_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return float("inf")
        return self.total / self.elapsed_seconds

    def top_errors(self, n: int = 10) -> list[tuple[str, int]]:
        """Most frequent failure causes as (error type, count), most common first."""
        counts = Counter(failure.error_type for failure in self.failures.values())
        return counts.most_common(n)


async def _parse_in_thread(
    parse: Callable[[Path], ExtractedMetadata],
    path: Path,
    timeout: float | None,
    thread_name: str,
) -> ExtractedMetadata:
    """
    Run one parse on its own daemon thread and await its outcome.

    The timeout clock starts once the thread is running, not when the parse
    is scheduled. A parse that times out is abandoned: its thread is never
    joined, so neither the event loop nor interpreter exit waits for it.

    Raises:
        TimeoutError: If the parse runs longer than ``timeout`` seconds
        Exception: Whatever the parse raised
    """
    loop = asyncio.get_running_loop()
    started = asyncio.Event()
    outcome: asyncio.Future[ExtractedMetadata] = loop.create_future()

    def _resolve(metadata: ExtractedMetadata | None, error: Exception | None) -> None:
        if outcome.done():
            return
        if error is not None:
            outcome.set_exception(error)
        else:
            outcome.set_result(metadata)

    def _post(callback: Callable[..., None], *args) -> None:
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop already closed; nobody is waiting for an abandoned parse
            logger.debug(f"{thread_name}: discarding result of abandoned parse")

    def _work() -> None:
        _post(started.set)
        try:
            metadata = parse(path)
        except Exception as e:
            _post(_resolve, None, e)
        else:
            _post(_resolve, metadata, None)

    threading.Thread(target=_work, name=thread_name, daemon=True).start()

    if timeout is None:
        return await outcome
    await started.wait()
    return await asyncio.wait_for(outcome, timeout)


async def run_extractions(
    backend: ExtractionBackend,
    corpus: DocumentCorpus,
    document_ids: Iterable[str],
    max_concurrent: int = 8,
    progress_interval: int = 50,
    timeout: float | None = None,
    on_document_done: Callable[[], None] | None = None,
) -> ExtractionReport:
    """
    Parse every document with one backend, never raising per-document errors.

    Args:
        backend: Backend to run
        corpus: Resolves document ids to files
        document_ids: Documents to parse (no ordering guarantee)
        max_concurrent: Maximum documents parsed at once
        progress_interval: Log throughput every N completions (0 disables)
        timeout: Per-document limit in seconds, counted from when the parse
            thread starts. A timed-out parse is recorded as a failure and its
            thread is abandoned: it frees its concurrency slot, keeps running
            in the background and is never joined.
        on_document_done: Called after each document (used for progress bars)

    Returns:
        ExtractionReport with one result per document id
    """
    ids = sorted(set(document_ids))
    semaphore = asyncio.Semaphore(max_concurrent)
    progress = ProgressTracker(len(ids), progress_interval, label=backend.name)

    logger.info(
        f"Running backend {backend.name} on {len(ids)} documents "
        f"(max {max_concurrent} concurrent)"
    )

    async def _extract_one(document_id: str) -> tuple[str, ExtractionResult]:
        async with semaphore:
            try:
                path = corpus.resolve(document_id)
                metadata = await _parse_in_thread(
                    backend.parse, path, timeout, f"{backend.name}-{document_id}"
                )
                result: ExtractionResult = ExtractionSuccess(metadata)
            except Exception as e:
                logger.debug(
                    f"{backend.name} failed on {document_id}: {type(e).__name__}: {e}"
                )
                result = ExtractionFailure.from_exception(e)

        progress.increment()
        if on_document_done is not None:
            on_document_done()
        return document_id, result

    pairs = await asyncio.gather(*(_extract_one(document_id) for document_id in ids))

    return ExtractionReport(
        backend=backend.name,
        results=dict(pairs),
        elapsed_seconds=progress.elapsed(),
    )


def log_extraction_summary(report: ExtractionReport, top_n: int = 10) -> None:
    """Log throughput, failure rate and the most frequent failure causes."""
    logger.info(
        f"{report.backend}: finished {report.total} documents at "
        f"{report.documents_per_second:.2f} documents per second"
    )
    failures = report.failures
    logger.info(
        f"{report.backend}: failed {len(failures)} times ({100.0 * report.failure_rate:.2f}%)"
    )
    if failures:
        logger.info(f"{report.backend}: top errors:")
        for error_type, count in report.top_errors(top_n):
            logger.info(f"{count}\t{error_type}")


def check_health(
    report: ExtractionReport,
    min_documents_per_second: float,
    max_failure_rate: float,
) -> None:
    """
    Assert the extraction run is usable for evaluation.

    Throughput must exceed the floor. The failure-rate ceiling is only
    checked when something failed. An empty run has nothing to gate.

    Raises:
        ThroughputTooLowError: If documents/second <= min_documents_per_second
        FailureRateTooHighError: If failure rate >= max_failure_rate
    """
    if report.total == 0:
        logger.warning(f"{report.backend}: no documents extracted, skipping health check")
        return

    dps = report.documents_per_second
    if not dps > min_documents_per_second:
        raise ThroughputTooLowError(
            f"{report.backend} ran at {dps:.2f} documents/second "
            f"(minimum {min_documents_per_second:.2f})",
            backend=report.backend,
            observed=dps,
            limit=min_documents_per_second,
        )

    rate = report.failure_rate
    if report.failures and not rate < max_failure_rate:
        raise FailureRateTooHighError(
            f"{report.backend} failed on {100.0 * rate:.2f}% of documents "
            f"(maximum {100.0 * max_failure_rate:.2f}%)",
            backend=report.backend,
            observed=rate,
            limit=max_failure_rate,
        )

    logger.debug(f"{report.backend}: health check passed ({dps:.2f} dps, {rate:.2%} failed)")
