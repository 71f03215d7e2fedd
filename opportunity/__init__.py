"""
Opportunity update pipeline.

- Domain models (snapshots, field updates, intents, extractions)
- Stage-gate policy and extraction merging
- Intent classification, notes extraction and orchestration live in
  ``opportunity.intent_classifier``, ``opportunity.notes_parser`` and
  ``opportunity.orchestrator``
"""

from .errors import (
    ErrorKind,
    LLMCallError,
    CRMClientError,
    OpportunityUpdateError,
    UpdateIssue,
    UpstreamMalformedError,
    WriteFailedError,
)
from .models import (
    ClaudeExtraction,
    Confidence,
    FieldUpdate,
    IntentAction,
    OpportunityState,
    ParsedIntent,
    RequiredField,
    StageChange,
    StageDecision,
    StageGateRule,
    StageTransition,
    TransitionDirection,
    ValidationResult,
)
from .stage_gates import StageGatePolicy, normalize_stage
from .field_mapper import FieldMapper, FieldValidator
from .extraction_merger import ExtractionMerger, MergeResult

__all__ = [
    "ErrorKind",
    "LLMCallError",
    "CRMClientError",
    "OpportunityUpdateError",
    "UpdateIssue",
    "UpstreamMalformedError",
    "WriteFailedError",
    "ClaudeExtraction",
    "Confidence",
    "FieldUpdate",
    "IntentAction",
    "OpportunityState",
    "ParsedIntent",
    "RequiredField",
    "StageChange",
    "StageDecision",
    "StageGateRule",
    "StageTransition",
    "TransitionDirection",
    "ValidationResult",
    "StageGatePolicy",
    "normalize_stage",
    "FieldMapper",
    "FieldValidator",
    "ExtractionMerger",
    "MergeResult",
]
