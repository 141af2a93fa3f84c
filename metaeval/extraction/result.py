"""
Per-document extraction outcome.

A backend either produced ExtractedMetadata or failed. Failures are values,
not exceptions: the orchestrator wraps every attempt so one bad document
never aborts a corpus run, and the aggregator scores failures as 0.0/0.0.
"""

from dataclasses import dataclass
from typing import Union

from metaeval.evals.schema import ExtractedMetadata


@dataclass(frozen=True)
class ExtractionSuccess:
    metadata: ExtractedMetadata

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExtractionFailure:
    """
    A captured extraction fault.

    Attributes:
        error_type: Exception class name, used to group failures by cause
        message: Exception message
    """

    error_type: str
    message: str

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ExtractionFailure":
        return cls(type(exc).__name__, str(exc))


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]
