"""
Extraction layer: run backends over a document corpus.

Importing this package registers the built-in backend plugins (json,
callable) with BackendRegistry.

Public API:
    - ExtractionBackend: Protocol for document parsers
    - BackendRegistry: Plugin registry that builds backends from config
    - DocumentCorpus: Resolves document ids to files
    - run_extractions: Concurrent, failure-tolerant extraction
    - check_health: Corpus-level throughput and failure-rate gate
"""

from .backends import (
    BackendRegistry,
    CallableBackendPlugin,
    ExtractedMetadataPayload,
    ExtractionBackend,
    JsonBackendPlugin,
)
from .corpus import DocumentCorpus
from .orchestrator import (
    ExtractionReport,
    ProgressTracker,
    check_health,
    log_extraction_summary,
    run_extractions,
)
from .result import ExtractionFailure, ExtractionResult, ExtractionSuccess

__all__ = [
    # Protocols and registry
    "ExtractionBackend",
    "BackendRegistry",
    # Built-in plugins
    "CallableBackendPlugin",
    "JsonBackendPlugin",
    "ExtractedMetadataPayload",
    # Corpus
    "DocumentCorpus",
    # Results
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionSuccess",
    # Orchestration
    "ExtractionReport",
    "ProgressTracker",
    "check_health",
    "log_extraction_summary",
    "run_extractions",
]
