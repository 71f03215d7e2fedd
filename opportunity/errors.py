"""
Error taxonomy for the opportunity update pipeline.

Recoverable problems are reported as ``UpdateIssue`` records; failures that
abort a phase are raised as ``OpportunityUpdateError`` subclasses and turned
into issues by the orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Categories of pipeline problems."""
    UPSTREAM_MALFORMED = "upstream_malformed"    # LLM or page read returned an unexpected shape
    VALIDATION_FAILED = "validation_failed"      # Stage gate blocked a transition
    WRITE_FAILED = "write_failed"                # CRM write collaborator failed
    INCONSISTENT = "inconsistent"                # Extraction disagrees with the record
    NOT_FOUND = "not_found"                      # Opportunity could not be located
    COLLABORATOR_ERROR = "collaborator_error"    # LLM or CRM call failed outright


@dataclass
class UpdateIssue:
    """A problem reported upward with enough context to render guidance."""
    kind: ErrorKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": dict(self.context),
        }


class OpportunityUpdateError(Exception):
    """Base error for the update pipeline."""

    kind = ErrorKind.COLLABORATOR_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_issue(self) -> UpdateIssue:
        return UpdateIssue(kind=self.kind, message=self.message, context=dict(self.context))


class UpstreamMalformedError(OpportunityUpdateError):
    """Upstream data could not be parsed into the expected shape."""

    kind = ErrorKind.UPSTREAM_MALFORMED


class WriteFailedError(OpportunityUpdateError):
    """The CRM-page collaborator rejected or failed a write."""

    kind = ErrorKind.WRITE_FAILED


class LLMCallError(OpportunityUpdateError):
    """The LLM provider call itself failed."""

    kind = ErrorKind.COLLABORATOR_ERROR


class CRMClientError(OpportunityUpdateError):
    """The CRM-page collaborator could not be reached."""

    kind = ErrorKind.COLLABORATOR_ERROR
