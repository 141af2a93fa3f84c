"""
Configuration schema models for metaeval.

This module defines Pydantic models for validating and parsing the
metaeval.yaml file.

Models:
    RunSettings: Corpus size, concurrency and diagnostics output
    HealthSettings: Extraction health gate thresholds
    GoldSettings: Gold data location and per-metric file overrides
    CorpusSettings: Where a backend's input documents live
    BackendConfig: One extraction backend to evaluate
    EvalConfig: Root configuration model (validates entire YAML)

Relative paths are resolved against the directory holding the YAML file by
the loader, not by these models.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from metaeval.extraction.backends import BackendRegistry


class RunSettings(BaseModel):
    """
    Runtime settings for an evaluation run.

    Attributes:
        max_documents: Maximum gold rows read from each gold file (default: 1000)
        max_concurrent_documents: Documents parsed at once per backend (default: 8)
        progress_interval: Log throughput every N documents (default: 50, 0 disables)
        document_timeout_seconds: Optional per-document extraction limit
        diagnostics_path: TSV receiving every unmatched item, or None to disable
    """

    max_documents: int = 1000
    max_concurrent_documents: int = 8
    progress_interval: int = 50
    document_timeout_seconds: float | None = None
    diagnostics_path: str | None = "MetaEvalErrors.tsv"

    @field_validator("max_documents")
    @classmethod
    def validate_max_documents(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_documents must be at least 1 (got: {v})")
        return v

    @field_validator("max_concurrent_documents")
    @classmethod
    def validate_max_concurrent_documents(cls, v: int) -> int:
        """Parsing is CPU and memory heavy; keep concurrency in a sane range."""
        if not 1 <= v <= 64:
            raise ValueError(
                f"max_concurrent_documents must be between 1 and 64 (got: {v})"
            )
        return v

    @field_validator("progress_interval")
    @classmethod
    def validate_progress_interval(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"progress_interval cannot be negative (got: {v})")
        return v

    @field_validator("document_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"document_timeout_seconds must be positive, got: {v}")
        return v


class HealthSettings(BaseModel):
    """
    Extraction health gate.

    Attributes:
        min_documents_per_second: Throughput must exceed this (default: 1.0)
        max_failure_rate: Failure rate must stay below this fraction (default: 0.05)
        top_errors: Number of most frequent failure causes to log (default: 10)
    """

    min_documents_per_second: float = 1.0
    max_failure_rate: float = 0.05
    top_errors: int = 10

    @field_validator("min_documents_per_second")
    @classmethod
    def validate_min_dps(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"min_documents_per_second cannot be negative, got: {v}")
        return v

    @field_validator("max_failure_rate")
    @classmethod
    def validate_max_failure_rate(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"max_failure_rate must be in (0.0, 1.0], got: {v}")
        return v

    @field_validator("top_errors")
    @classmethod
    def validate_top_errors(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"top_errors must be at least 1 (got: {v})")
        return v


class GoldSettings(BaseModel):
    """
    Gold data location.

    Attributes:
        directory: Directory that built-in gold file paths are relative to
        files: Per-metric gold file overrides (metric name -> path)
    """

    directory: str
    files: dict[str, str] = {}

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("gold directory cannot be empty")
        return v


class CorpusSettings(BaseModel):
    """
    Documents a backend reads.

    Attributes:
        directory: Directory holding one file per document
        suffix: File name suffix appended to the document id (default: ".pdf")
    """

    directory: str
    suffix: str = ".pdf"

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("corpus directory cannot be empty")
        return v


class BackendConfig(BaseModel):
    """
    One extraction backend under evaluation.

    Attributes:
        name: Display name, unique within the config
        plugin: Registered backend plugin (e.g. "json", "callable")
        corpus: Documents this backend parses
        options: Plugin-specific options, validated by the plugin
        enforce_health: Apply the health gate to this backend (default: True).
            Turn off for precomputed extractions, whose "throughput" only
            measures disk reads.

    Example:
        backends:
          - name: science-parse
            plugin: callable
            corpus: {directory: PapersTestSet, suffix: .pdf}
            options: {parser: "sciparse.parse:parse_pdf"}
          - name: grobid
            plugin: json
            corpus: {directory: GrobidExtractions, suffix: .json}
            enforce_health: false
    """

    name: str
    plugin: str
    corpus: CorpusSettings
    options: dict = {}
    enforce_health: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("backend name cannot be empty")
        return v

    @field_validator("plugin")
    @classmethod
    def validate_plugin(cls, v: str) -> str:
        if not BackendRegistry.is_registered(v):
            available = ", ".join(p["name"] for p in BackendRegistry.list_plugins())
            raise ValueError(f"unknown backend plugin '{v}' (available: {available})")
        return v

    @model_validator(mode="after")
    def validate_options(self) -> "BackendConfig":
        """Let the plugin check its own options."""
        plugin = BackendRegistry.get_plugin(self.plugin)
        is_valid, error_msg = plugin.validate_config(self.options)
        if not is_valid:
            raise ValueError(f"invalid options for backend '{self.name}': {error_msg}")
        return self


class EvalConfig(BaseModel):
    """
    Root configuration model for metaeval.yaml.

    The first backend is the baseline; every other backend is compared
    against it.

    Attributes:
        run_settings: Runtime settings
        health: Health gate thresholds
        gold: Gold data location
        metrics: Metric names to score, or None for every built-in metric
        backends: At least two backends with unique names
    """

    run_settings: RunSettings = Field(default_factory=RunSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    gold: GoldSettings
    metrics: list[str] | None = None
    backends: list[BackendConfig]

    @field_validator("backends")
    @classmethod
    def validate_backends(cls, v: list[BackendConfig]) -> list[BackendConfig]:
        if len(v) < 2:
            raise ValueError("at least 2 backends are required for a comparison")
        names = [backend.name for backend in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate backend names: {', '.join(duplicates)}")
        return v

    @field_validator("metrics")
    @classmethod
    def validate_metrics(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        if not v:
            raise ValueError("metrics cannot be an empty list (omit it to run all)")
        duplicates = sorted({name for name in v if v.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate metric names: {', '.join(duplicates)}")
        return v

    @property
    def baseline(self) -> BackendConfig:
        return self.backends[0]
