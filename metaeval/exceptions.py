"""
Custom exceptions for metaeval.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the evaluation harness. All exceptions inherit from the
base MetaEvalError for consistent catching.

Exception Hierarchy:
    MetaEvalError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   └── MetricRegistryError
    ├── GoldDataError
    │   └── MalformedGoldRowError
    ├── ExtractionError
    │   ├── BackendError
    │   └── DocumentNotFoundError
    └── HealthCheckError
        ├── ThroughputTooLowError
        └── FailureRateTooHighError

Per-document extraction failures are NOT raised past the orchestrator: they
are captured as ExtractionFailure values and scored as 0.0/0.0. Only
run-level problems (configuration, gold data, health gate) abort a run.

Usage:
    from metaeval.exceptions import HealthCheckError

    try:
        check_health(report, settings)
    except HealthCheckError as e:
        logger.error(f"Backend unusable for evaluation: {e}")
        sys.exit(3)
"""


class MetaEvalError(Exception):
    """
    Base exception for all metaeval errors.

    Example:
        try:
            run = run_evaluation(config)
        except MetaEvalError as e:
            logger.error(f"Evaluation error: {e}")
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(MetaEvalError):
    """
    Base class for configuration-related errors.

    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("/path/to/metaeval.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file is invalid (schema validation failed).

    Example:
        raise ConfigValidationError("Field 'backends' must contain at least 2 entries")
    """

    pass


class MetricRegistryError(ConfigurationError):
    """
    A metric was registered twice or an unknown metric was requested.

    Example:
        raise MetricRegistryError("Unknown metric: 'titel'")
    """

    pass


# ============================================================================
# Gold Data Errors
# ============================================================================


class GoldDataError(MetaEvalError):
    """
    Gold label data could not be loaded.

    Scoring against missing or malformed gold data is meaningless, so these
    errors abort the run at load time. Should result in exit code 2.
    """

    pass


class MalformedGoldRowError(GoldDataError):
    """
    A gold TSV row does not have the shape its metric expects.

    Attributes:
        path: Gold file the row came from
        line_number: 1-based line number within the file

    Example:
        raise MalformedGoldRowError(
            "expected 4 pipe-delimited fields, got 3",
            path="isaac/bibliographies.tsv",
            line_number=17,
        )
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line_number: int | None = None,
    ):
        if path is not None and line_number is not None:
            message = f"{path}:{line_number}: {message}"
        super().__init__(message)
        self.path = path
        self.line_number = line_number


# ============================================================================
# Extraction Errors
# ============================================================================


class ExtractionError(MetaEvalError):
    """
    Base class for errors raised while producing ExtractedMetadata.

    Raised inside a single document's extraction; the orchestrator captures
    it as a failure for that document.
    """

    pass


class BackendError(ExtractionError):
    """
    An extraction backend could not be created or produced unusable output.

    Example:
        raise BackendError("Cannot import parser 'mypkg.parse:run'")
    """

    pass


class DocumentNotFoundError(ExtractionError):
    """
    The corpus has no document for the requested id.

    Example:
        raise DocumentNotFoundError("No document for id 'a1b2c3' in ./pdfs")
    """

    pass


# ============================================================================
# Health Gate Errors
# ============================================================================


class HealthCheckError(MetaEvalError):
    """
    Corpus-level extraction health is below the configured gate.

    Fatal for the whole run: scores from a backend that is too slow or fails
    too often are not comparable. Should result in exit code 3.

    Attributes:
        backend: Name of the backend that failed the gate
        observed: Observed value (documents/second or failure rate)
        limit: Configured floor or ceiling
    """

    def __init__(
        self,
        message: str,
        backend: str | None = None,
        observed: float | None = None,
        limit: float | None = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.observed = observed
        self.limit = limit


class ThroughputTooLowError(HealthCheckError):
    """
    Extraction throughput did not exceed the minimum documents/second.

    Example:
        raise ThroughputTooLowError(
            "science-parse ran at 0.42 documents/second (minimum 1.00)",
            backend="science-parse",
            observed=0.42,
            limit=1.0,
        )
    """

    pass


class FailureRateTooHighError(HealthCheckError):
    """
    Too many documents failed to extract.

    Example:
        raise FailureRateTooHighError(
            "grobid failed on 7.10% of documents (maximum 5.00%)",
            backend="grobid",
            observed=0.071,
            limit=0.05,
        )
    """

    pass
