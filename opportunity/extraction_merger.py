"""
Extraction Merger.

Turns a sanitized LLM extraction plus the current opportunity snapshot into
one update per field, a gated stage decision and the list of fields that are
still missing. Pure transformation: callers apply the result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Mapping, Optional

from .errors import ErrorKind, UpdateIssue
from .field_mapper import FieldMapper, FieldValidator
from .models import (
    ClaudeExtraction,
    FieldUpdate,
    OpportunityState,
    StageChange,
    StageDecision,
)
from .stage_gates import StageGatePolicy, normalize_stage, stage_key

logger = logging.getLogger(__name__)

ALL_STAGES = "*"


@dataclass
class MergeResult:
    """Result of merging an extraction into the current record."""
    updates: List[FieldUpdate] = field(default_factory=list)
    stage_decision: Optional[StageDecision] = None
    missing_fields: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    issues: List[UpdateIssue] = field(default_factory=list)

    @property
    def stage_change_requested(self) -> bool:
        return self.stage_decision is not None

    @property
    def stage_blocked(self) -> bool:
        return self.stage_decision is not None and not self.stage_decision.allowed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updates": [u.to_dict() for u in self.updates],
            "stage_decision": self.stage_decision.to_dict() if self.stage_decision else None,
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "issues": [i.to_dict() for i in self.issues],
        }


class ExtractionMerger:
    """
    Merges extracted field updates and gates proposed stage changes.

    Steps:
    1. Map natural-language field names to API names
    2. Keep one update per field (higher confidence wins, later wins ties)
    3. Drop fields the stage schema does not recognize
    4. Drop values that fail per-field validation
    5. Gate the stage change against the projected record
    """

    def __init__(
        self,
        policy: StageGatePolicy,
        field_schema: Optional[Mapping[str, Collection[str]]] = None,
        field_mapper: Optional[FieldMapper] = None,
        field_validator: Optional[FieldValidator] = None,
    ):
        """
        Initialize the merger.

        Args:
            policy: Stage-gate policy consulted for stage changes
            field_schema: Recognized fields per stage ("*" for all stages); None accepts any field
            field_mapper: Natural-language to API name mapper
            field_validator: Per-field value validator
        """
        self.policy = policy
        self.field_schema = field_schema
        self.field_mapper = field_mapper or FieldMapper()
        self.field_validator = field_validator or FieldValidator()

    def merge(self, extraction: ClaudeExtraction, current: OpportunityState) -> MergeResult:
        """
        Merge an extraction into the current opportunity state.

        Args:
            extraction: Sanitized LLM extraction
            current: Current opportunity snapshot

        Returns:
            MergeResult with deduplicated updates and the stage decision
        """
        result = MergeResult(suggestions=list(extraction.suggestions))
        rejected: List[str] = []

        deduplicated = self._deduplicate(extraction.field_updates)

        for update in deduplicated:
            if not self._is_recognized(update.field, current.stage):
                rejected.append(update.field)
                result.warnings.append(
                    f"Field '{update.field}' is not recognized for stage {current.stage}; skipped"
                )
                continue

            value = self.field_validator.normalize(update.field, update.value)
            valid, error = self.field_validator.validate(update.field, value)
            if not valid:
                rejected.append(update.field)
                result.warnings.append(f"Rejected value for {update.field}: {error}")
                continue

            result.updates.append(
                FieldUpdate(
                    field=update.field,
                    value=value,
                    confidence=update.confidence,
                    source=update.source,
                )
            )

        gate_missing: List[str] = []
        if extraction.stage_change is not None:
            decision = self._decide_stage(extraction.stage_change, current, result)
            result.stage_decision = decision
            if decision is not None and not decision.allowed:
                gate_missing = decision.missing_fields
                result.warnings.extend(decision.warnings)
                result.issues.append(
                    UpdateIssue(
                        kind=ErrorKind.VALIDATION_FAILED,
                        message=f"Stage change {decision.from_stage} -> {decision.to_stage} blocked by stage gate",
                        context={"missing_fields": list(decision.missing_fields)},
                    )
                )

        result.missing_fields = self._union(extraction.missing_fields, rejected, gate_missing)

        logger.debug(
            f"Merged extraction for {current.id}: {len(result.updates)} updates, "
            f"{len(result.missing_fields)} missing fields"
        )
        return result

    def _deduplicate(self, updates: List[FieldUpdate]) -> List[FieldUpdate]:
        """One update per (mapped) field; strictly higher confidence wins, ties keep the later entry."""
        chosen: Dict[str, FieldUpdate] = {}
        for update in updates:
            api_name = self.field_mapper.map_field_name(update.field)
            if not api_name:
                continue
            mapped = FieldUpdate(
                field=api_name,
                value=update.value,
                confidence=update.confidence,
                source=update.source,
            )
            existing = chosen.get(api_name)
            if existing is None or mapped.confidence >= existing.confidence:
                chosen[api_name] = mapped
        return list(chosen.values())

    def _is_recognized(self, field_name: str, stage: str) -> bool:
        if self.field_schema is None:
            return True
        stage_fields = self.field_schema.get(normalize_stage(stage), ())
        shared_fields = self.field_schema.get(ALL_STAGES, ())
        return field_name in stage_fields or field_name in shared_fields

    def _decide_stage(
        self,
        change: StageChange,
        current: OpportunityState,
        result: MergeResult,
    ) -> Optional[StageDecision]:
        """Gate a proposed stage change; None when the change is ignored."""
        if stage_key(change.from_stage) != stage_key(current.stage):
            self._inconsistent(
                f"Proposed stage change starts from '{change.from_stage}' but the opportunity "
                f"is in '{current.stage}'; stage change ignored",
                change,
                current,
                result,
            )
            return None

        to_stage = self.policy.canonical_stage(change.to_stage)
        if to_stage is None:
            self._inconsistent(
                f"Proposed stage '{change.to_stage}' is not a pipeline stage; stage change ignored",
                change,
                current,
                result,
            )
            return None

        projected = current.with_updates(result.updates)
        validation = self.policy.evaluate_transition(current.stage, to_stage, projected)

        return StageDecision(
            allowed=validation.is_valid,
            from_stage=current.stage,
            to_stage=to_stage,
            missing_fields=list(validation.missing_fields),
            warnings=list(validation.warnings),
            reason=change.reason,
        )

    @staticmethod
    def _inconsistent(
        message: str,
        change: StageChange,
        current: OpportunityState,
        result: MergeResult,
    ) -> None:
        logger.warning(message)
        result.warnings.append(message)
        result.issues.append(
            UpdateIssue(
                kind=ErrorKind.INCONSISTENT,
                message=message,
                context={
                    "proposed_from": change.from_stage,
                    "current_stage": current.stage,
                    "proposed_to": change.to_stage,
                },
            )
        )

    @staticmethod
    def _union(*groups: List[str]) -> List[str]:
        seen: Dict[str, None] = {}
        for group in groups:
            for name in group:
                if name and name not in seen:
                    seen[name] = None
        return list(seen)
