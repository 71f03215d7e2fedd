"""
Domain models for opportunity updates.

Snapshots, proposed field updates, parsed intents, LLM extractions and
stage-gate policy types. All of them are transient and rebuilt per run.
"""

import functools
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple


@functools.total_ordering
class Confidence(Enum):
    """Three-level confidence ranking with a total order (HIGH > MEDIUM > LOW)."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def __lt__(self, other: "Confidence") -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: Any, default: "Confidence" = None) -> "Confidence":
        """Tolerant conversion from upstream values ("High", " medium ", ...)."""
        if isinstance(value, Confidence):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return default if default is not None else cls.LOW


_CONFIDENCE_RANK = {
    Confidence.LOW: 0,
    Confidence.MEDIUM: 1,
    Confidence.HIGH: 2,
}


class IntentAction(Enum):
    """What the user wants done with an opportunity."""
    CREATE_OPPORTUNITY = "create_opportunity"
    UPDATE_OPPORTUNITY = "update_opportunity"
    SEARCH_OPPORTUNITY = "search_opportunity"
    UNCLEAR = "unclear"


class TransitionDirection(Enum):
    """How a requested stage transition was expressed."""
    NEXT = "next"
    SPECIFIC = "specific"


@dataclass
class FieldUpdate:
    """A proposed value for one opportunity field."""
    field: str
    value: Any
    confidence: Confidence = Confidence.LOW
    source: str = "call notes"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "value": self.value,
            "confidence": self.confidence.value,
            "source": self.source,
        }


@dataclass
class OpportunityState:
    """Read-mostly snapshot of a CRM opportunity."""
    id: str
    name: str
    stage: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def with_updates(self, updates: Iterable[FieldUpdate]) -> "OpportunityState":
        """Return the projected record with ``updates`` applied in memory."""
        projected = dict(self.fields)
        for update in updates:
            projected[update.field] = update.value
        return replace(self, fields=projected)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "stage": self.stage,
            "fields": dict(self.fields),
        }


@dataclass
class StageTransition:
    """Stage movement requested in the user's message."""
    target_stage: Optional[str] = None
    direction: Optional[TransitionDirection] = None


@dataclass
class ParsedIntent:
    """Normalized result of intent classification."""
    action: IntentAction
    confidence: Confidence = Confidence.LOW
    opportunity_identifier: Optional[str] = None
    account_name: Optional[str] = None
    information: Optional[str] = None
    stage_transition: Optional[StageTransition] = None
    clarification_needed: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.action is IntentAction.UNCLEAR and not self.clarification_needed:
            self.clarification_needed = [
                "I couldn't tell what you want to do. Should I create, update, or search for an opportunity?"
            ]

    @property
    def is_actionable(self) -> bool:
        return self.action is not IntentAction.UNCLEAR

    def to_dict(self) -> Dict[str, Any]:
        transition = None
        if self.stage_transition:
            transition = {
                "target_stage": self.stage_transition.target_stage,
                "direction": (
                    self.stage_transition.direction.value
                    if self.stage_transition.direction else None
                ),
            }
        return {
            "action": self.action.value,
            "confidence": self.confidence.value,
            "opportunity_identifier": self.opportunity_identifier,
            "account_name": self.account_name,
            "information": self.information,
            "stage_transition": transition,
            "clarification_needed": list(self.clarification_needed),
        }


@dataclass
class StageChange:
    """Stage change proposed by the extraction."""
    from_stage: str
    to_stage: str
    reason: str = ""


@dataclass
class ClaudeExtraction:
    """Sanitized structured extraction returned by the LLM for a set of notes."""
    field_updates: List[FieldUpdate] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    stage_change: Optional[StageChange] = None


@dataclass(frozen=True)
class RequiredField:
    """A field that must be populated before entering a stage."""
    api_name: str
    display_name: str
    description: str = ""
    validation: Optional[Callable[[Any], bool]] = None


@dataclass(frozen=True)
class StageGateRule:
    """
    Required-field policy for a stage transition.

    ``from_stage=None`` makes the rule a wildcard that applies to every
    transition into ``to_stage`` without a more specific rule.
    """
    from_stage: Optional[str]
    to_stage: str
    required_fields: Tuple[RequiredField, ...] = ()
    warning_message: Optional[str] = None

    @property
    def is_wildcard(self) -> bool:
        return self.from_stage is None


@dataclass
class ValidationResult:
    """Outcome of a stage-gate evaluation."""
    is_valid: bool
    missing_fields: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
        }


@dataclass
class StageDecision:
    """Whether a proposed stage change may be applied."""
    allowed: bool
    from_stage: str
    to_stage: str
    missing_fields: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
            "reason": self.reason,
        }
