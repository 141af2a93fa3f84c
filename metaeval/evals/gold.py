"""
Gold data loader.

Gold labels live in one TSV per metric (several metrics may share a file).
Each line is ``document_id<TAB>label<TAB>label...``; lines and fields are
trimmed, blank lines are skipped, and at most ``max_documents`` rows are
read from each file.

Rows are checked against the metric's gold parser as they are read, so a
malformed row fails the load with the file and line number instead of
surfacing halfway through scoring.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from metaeval.exceptions import GoldDataError, MalformedGoldRowError

from .registry import Metric

logger = logging.getLogger(__name__)

DEFAULT_MAX_DOCUMENTS = 1000


@dataclass(frozen=True)
class GoldRecord:
    """Gold labels of one document for one metric."""

    metric: Metric
    document_id: str
    labels: tuple[str, ...]


def read_gold_rows(
    path: Path, max_documents: int = DEFAULT_MAX_DOCUMENTS
) -> list[tuple[int, str, tuple[str, ...]]]:
    """
    Read ``(line_number, document_id, labels)`` rows from one gold TSV.

    Raises:
        GoldDataError: If the file is missing or cannot be read
    """
    if not path.is_file():
        raise GoldDataError(f"Gold data file not found: {path}")

    rows = []
    try:
        with path.open(encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if len(rows) >= max_documents:
                    break
                line = line.strip()
                if not line:
                    continue
                fields = [field.strip() for field in line.split("\t")]
                rows.append((line_number, fields[0], tuple(fields[1:])))
    except (OSError, UnicodeDecodeError) as e:
        raise GoldDataError(f"Failed to read gold data file {path}: {e}") from e

    return rows


def load_gold_data(
    metrics: Iterable[Metric],
    gold_dir: str | Path,
    files: Mapping[str, str | Path] | None = None,
    max_documents: int = DEFAULT_MAX_DOCUMENTS,
) -> list[GoldRecord]:
    """
    Load gold records for every metric.

    Args:
        metrics: Metrics to load gold data for
        gold_dir: Directory that metric gold_file paths are relative to
        files: Optional per-metric overrides of the gold file path
        max_documents: Maximum rows read from each gold file

    Returns:
        GoldRecords in metric order, then file order

    Raises:
        GoldDataError: If a gold file is missing or unreadable
        MalformedGoldRowError: If any row cannot be parsed by its metric

    Example:
        >>> records = load_gold_data(default_registry(), "golddata", max_documents=50)
        >>> {r.metric.name for r in records} >= {"title", "bibAll"}
        True
    """
    gold_dir = Path(gold_dir)
    files = files or {}
    cache: dict[Path, list[tuple[int, str, tuple[str, ...]]]] = {}
    records = []

    for metric in metrics:
        path = Path(files.get(metric.name, gold_dir / metric.gold_file))
        if path not in cache:
            cache[path] = read_gold_rows(path, max_documents)

        for line_number, document_id, labels in cache[path]:
            try:
                metric.check_gold(labels)
            except ValueError as e:
                raise MalformedGoldRowError(
                    f"{metric.name}: {e}", path=path, line_number=line_number
                ) from e
            records.append(GoldRecord(metric, document_id, labels))

        logger.debug(f"Loaded {len(cache[path])} gold rows for {metric.name} from {path}")

    logger.info(
        f"Loaded {len(records)} gold records covering "
        f"{len(document_ids(records))} documents"
    )
    return records


def document_ids(records: Iterable[GoldRecord]) -> set[str]:
    """Every document id with gold data for at least one metric."""
    return {record.document_id for record in records}
