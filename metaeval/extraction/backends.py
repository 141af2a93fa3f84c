"""
Extraction backends and their plugin registry.

A backend turns one document file into ExtractedMetadata. Backends are
created from configuration through BackendRegistry, which maps a plugin name
from metaeval.yaml to a plugin class that validates its options and builds
the backend.

Built-in plugins:
- json: reads precomputed extractions, one ``<document_id>.json`` per document
- callable: imports a ``module:function`` parser and calls it per document

Architecture:
    Plugins are registered at import time with the @BackendRegistry.register
    decorator. Backends must be safe to call concurrently for distinct
    documents; the orchestrator runs them in worker threads.

Example:
    >>> backend = BackendRegistry.create_backend(
    ...     "callable", name="science-parse", options={"parser": "mypkg.parse:parse_pdf"}
    ... )
    >>> metadata = backend.parse(Path("PapersTestSet/0a1b2c.pdf"))
"""

import importlib
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from metaeval.evals.schema import BibRecord, ExtractedMetadata, Mention
from metaeval.exceptions import BackendError, ConfigValidationError

logger = logging.getLogger(__name__)


@runtime_checkable
class ExtractionBackend(Protocol):
    """
    Protocol for anything that extracts metadata from one document.

    Attributes:
        name: Backend name used in reports and diagnostics

    ``parse`` raises on malformed or unreadable input; the orchestrator
    captures the exception as a per-document failure.
    """

    name: str

    def parse(self, path: Path) -> ExtractedMetadata: ...


# ============================================================================
# Payload models
# ============================================================================


class BibRecordPayload(BaseModel):
    """One bibliography entry as found in extraction JSON."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    authors: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("authors", "author")
    )
    venue: str = ""
    year: int = 0
    cite_regex: str | None = Field(
        default=None, validation_alias=AliasChoices("cite_regex", "citeRegEx")
    )
    short_cite_regex: str | None = Field(
        default=None, validation_alias=AliasChoices("short_cite_regex", "shortCiteRegEx")
    )

    @field_validator("title", "venue", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Extractors write null for fields they could not find."""
        return "" if v is None else v

    @field_validator("year", mode="before")
    @classmethod
    def none_as_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("authors", mode="before")
    @classmethod
    def none_as_no_authors(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_record(self) -> BibRecord:
        return BibRecord(
            title=self.title,
            authors=tuple(self.authors),
            venue=self.venue,
            year=self.year,
            cite_regex=self.cite_regex,
            short_cite_regex=self.short_cite_regex,
        )


class MentionPayload(BaseModel):
    """One in-text citation mention as found in extraction JSON."""

    model_config = ConfigDict(extra="ignore")

    context: str
    start_offset: int = Field(validation_alias=AliasChoices("start_offset", "startOffset"))
    end_offset: int = Field(validation_alias=AliasChoices("end_offset", "endOffset"))

    @model_validator(mode="after")
    def validate_offsets(self) -> "MentionPayload":
        """Validate the offsets delimit a span of the context."""
        if not 0 <= self.start_offset <= self.end_offset <= len(self.context):
            raise ValueError(
                f"offsets [{self.start_offset}, {self.end_offset}) out of range "
                f"for context of length {len(self.context)}"
            )
        return self

    def to_mention(self) -> Mention:
        return Mention(self.context, self.start_offset, self.end_offset)


class ExtractedMetadataPayload(BaseModel):
    """
    Extraction JSON for one document.

    Both snake_case and camelCase keys are accepted, so output written by
    JVM-based extractors loads unchanged.

    Example:
        >>> payload = ExtractedMetadataPayload.model_validate(
        ...     {"title": "Deep Learning", "abstractText": None, "authors": ["Y. LeCun"]}
        ... )
        >>> payload.to_metadata().authors
        ('Y. LeCun',)
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    authors: list[str] = Field(default_factory=list)
    abstract_text: str | None = Field(
        default=None,
        validation_alias=AliasChoices("abstract_text", "abstractText", "abstract"),
    )
    references: list[BibRecordPayload] = Field(default_factory=list)
    reference_mentions: list[MentionPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("reference_mentions", "referenceMentions"),
    )

    @field_validator("authors", "references", "reference_mentions", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_metadata(self) -> ExtractedMetadata:
        return ExtractedMetadata(
            title=self.title,
            authors=tuple(self.authors),
            abstract_text=self.abstract_text,
            references=tuple(r.to_record() for r in self.references),
            reference_mentions=tuple(m.to_mention() for m in self.reference_mentions),
        )


def metadata_from_payload(data: Any, source: str) -> ExtractedMetadata:
    """
    Validate a JSON-style payload and convert it to ExtractedMetadata.

    Raises:
        BackendError: If the payload does not have the expected shape
    """
    try:
        return ExtractedMetadataPayload.model_validate(data).to_metadata()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise BackendError(f"Invalid extraction payload from {source}: {problems}") from e


# ============================================================================
# Backends
# ============================================================================


class JsonBackend:
    """Loads precomputed extractions written by an external tool."""

    def __init__(self, name: str, encoding: str = "utf-8"):
        self.name = name
        self.encoding = encoding

    def parse(self, path: Path) -> ExtractedMetadata:
        with path.open(encoding=self.encoding) as f:
            data = json.load(f)
        return metadata_from_payload(data, str(path))


class CallableBackend:
    """
    Wraps a parser function ``(Path) -> ExtractedMetadata | dict``.

    Dict results are validated like precomputed JSON.
    """

    def __init__(self, name: str, parser: Callable[[Path], Any]):
        self.name = name
        self.parser = parser

    def parse(self, path: Path) -> ExtractedMetadata:
        result = self.parser(path)
        if isinstance(result, ExtractedMetadata):
            return result
        if isinstance(result, dict):
            return metadata_from_payload(result, f"{self.name} ({path.name})")
        raise BackendError(
            f"Parser for backend '{self.name}' returned {type(result).__name__}, "
            f"expected ExtractedMetadata or dict"
        )


def import_parser(reference: str) -> Callable[[Path], Any]:
    """
    Import a ``module.path:function`` reference.

    Raises:
        BackendError: If the module cannot be imported or the attribute is
            missing or not callable
    """
    module_name, _, attribute = reference.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise BackendError(f"Cannot import parser module '{module_name}': {e}") from e

    parser = module
    for part in attribute.split("."):
        parser = getattr(parser, part, None)
        if parser is None:
            raise BackendError(f"Module '{module_name}' has no attribute '{attribute}'")
    if not callable(parser):
        raise BackendError(f"Parser '{reference}' is not callable")
    return parser


# ============================================================================
# Plugins
# ============================================================================


class BackendPlugin(Protocol):
    """
    Protocol for backend plugin classes.

    Plugins are factories, so every method is a class method.
    """

    @classmethod
    def plugin_name(cls) -> str: ...

    @classmethod
    def backend_type(cls) -> str:
        """Return "precomputed" or "live"."""
        ...

    @classmethod
    def create_backend(cls, name: str, options: dict) -> ExtractionBackend: ...

    @classmethod
    def validate_config(cls, options: dict) -> tuple[bool, str]:
        """Return (is_valid, error_message); the message is empty when valid."""
        ...


class BackendRegistry:
    """
    Central registry of backend plugins.

    Class attributes:
        _plugins: Dictionary mapping plugin names to plugin classes
    """

    _plugins: dict[str, type] = {}

    @classmethod
    def register(cls, plugin_class: type) -> type:
        """
        Decorator to register a plugin class.

        Raises:
            AttributeError: If the plugin class is missing a required method
        """
        required_methods = [
            "plugin_name",
            "backend_type",
            "create_backend",
            "validate_config",
        ]
        for method in required_methods:
            if not hasattr(plugin_class, method):
                raise AttributeError(
                    f"Plugin {plugin_class.__name__} missing required method: {method}"
                )

        name = plugin_class.plugin_name()
        if name in cls._plugins:
            logger.warning(
                f"Plugin '{name}' already registered. "
                f"Overwriting with {plugin_class.__name__}"
            )

        cls._plugins[name] = plugin_class
        logger.debug(f"Registered backend plugin: {name} ({plugin_class.__name__})")
        return plugin_class

    @classmethod
    def create_backend(
        cls, plugin_name: str, name: str, options: dict | None = None
    ) -> ExtractionBackend:
        """
        Create a backend from plugin name and options.

        Raises:
            ConfigValidationError: If the plugin is unknown or options are invalid
            BackendError: If the plugin cannot build the backend
        """
        options = options or {}
        plugin = cls.get_plugin(plugin_name)

        is_valid, error_msg = plugin.validate_config(options)
        if not is_valid:
            raise ConfigValidationError(
                f"Invalid configuration for backend '{name}' ({plugin_name}): {error_msg}"
            )

        logger.debug(f"Creating backend: {name} ({plugin_name})")
        return plugin.create_backend(name, options)

    @classmethod
    def list_plugins(cls) -> list[dict]:
        return [
            {
                "name": name,
                "type": plugin.backend_type(),
                "class_name": plugin.__name__,
            }
            for name, plugin in cls._plugins.items()
        ]

    @classmethod
    def get_plugin(cls, plugin_name: str) -> type:
        """
        Raises:
            ConfigValidationError: If plugin name is not registered
        """
        if plugin_name not in cls._plugins:
            available = ", ".join(cls._plugins.keys()) if cls._plugins else "none"
            raise ConfigValidationError(
                f"Unknown backend plugin: '{plugin_name}'. "
                f"Available plugins: {available}"
            )
        return cls._plugins[plugin_name]

    @classmethod
    def is_registered(cls, plugin_name: str) -> bool:
        return plugin_name in cls._plugins


@BackendRegistry.register
class JsonBackendPlugin:
    """
    Precomputed extractions stored as JSON.

    Options:
        - encoding: File encoding (default: "utf-8")

    Pair with a corpus whose suffix is ".json".
    """

    @classmethod
    def plugin_name(cls) -> str:
        return "json"

    @classmethod
    def backend_type(cls) -> str:
        return "precomputed"

    @classmethod
    def create_backend(cls, name: str, options: dict) -> ExtractionBackend:
        return JsonBackend(name, encoding=options.get("encoding", "utf-8"))

    @classmethod
    def validate_config(cls, options: dict) -> tuple[bool, str]:
        unknown = set(options) - {"encoding"}
        if unknown:
            return False, f"Unknown options: {', '.join(sorted(unknown))}"
        return True, ""


@BackendRegistry.register
class CallableBackendPlugin:
    """
    Live extraction through an importable parser function.

    Options:
        - parser: ``module.path:function`` taking a Path and returning
          ExtractedMetadata or an extraction dict
    """

    @classmethod
    def plugin_name(cls) -> str:
        return "callable"

    @classmethod
    def backend_type(cls) -> str:
        return "live"

    @classmethod
    def create_backend(cls, name: str, options: dict) -> ExtractionBackend:
        return CallableBackend(name, import_parser(options["parser"]))

    @classmethod
    def validate_config(cls, options: dict) -> tuple[bool, str]:
        parser = options.get("parser")
        if not isinstance(parser, str) or not parser.strip():
            return False, "Missing 'parser' option (module.path:function)"
        module_name, sep, attribute = parser.partition(":")
        if not sep or not module_name or not attribute:
            return False, f"'parser' must look like 'module.path:function', got: {parser}"
        return True, ""
