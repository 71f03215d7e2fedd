"""
Update Orchestrator.

Runs one conversational turn end to end: classify the request, read the
opportunity, extract updates from the notes, gate the stage change and
write the result back through the CRM-page collaborator.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .errors import ErrorKind, OpportunityUpdateError, UpdateIssue, WriteFailedError
from .extraction_merger import ExtractionMerger, MergeResult
from .intent_classifier import IntentClassifier
from .models import (
    Confidence,
    FieldUpdate,
    IntentAction,
    OpportunityState,
    ParsedIntent,
    StageChange,
    TransitionDirection,
)
from .notes_parser import NotesParser
from .stage_gates import stage_key

logger = logging.getLogger(__name__)


class UpdateOutcome(Enum):
    """How a run ended."""
    NEEDS_CLARIFICATION = "needs_clarification"
    SEARCH_RESULT = "search_result"
    UNSUPPORTED = "unsupported"
    NOT_FOUND = "not_found"
    APPLIED = "applied"
    APPLIED_WITH_STAGE = "applied_with_stage"
    BLOCKED = "blocked"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class UpdateRequest:
    """A single user turn."""
    message: str
    conversation_context: Optional[Sequence[Mapping[str, str]]] = None
    is_cancelled: Optional[Callable[[], bool]] = None


@dataclass
class UpdateResult:
    """Everything the caller needs to render the outcome of a turn."""
    outcome: UpdateOutcome
    intent: Optional[ParsedIntent] = None
    opportunity: Optional[OpportunityState] = None
    merge: Optional[MergeResult] = None
    written_updates: List[FieldUpdate] = field(default_factory=list)
    stage_advanced_to: Optional[str] = None
    messages: List[str] = field(default_factory=list)
    clarification_needed: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[UpdateIssue] = field(default_factory=list)
    processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "intent": self.intent.to_dict() if self.intent else None,
            "opportunity": self.opportunity.to_dict() if self.opportunity else None,
            "merge": self.merge.to_dict() if self.merge else None,
            "written_updates": [u.to_dict() for u in self.written_updates],
            "stage_advanced_to": self.stage_advanced_to,
            "messages": list(self.messages),
            "clarification_needed": list(self.clarification_needed),
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


class UpdateOrchestrator:
    """
    Orchestrates the update pipeline.

    Pipeline:
    1. Classify intent
    2. Stop for clarification when unclear or low confidence
    3. Read the opportunity
    4. Extract field updates from the notes
    5. Merge and gate the stage change
    6. Write all field updates in one batch
    7. Advance the stage when the gate allows it
    """

    def __init__(
        self,
        intent_classifier: IntentClassifier,
        notes_parser: NotesParser,
        merger: ExtractionMerger,
        crm_client: Any,
        min_confidence: Confidence = Confidence.MEDIUM,
        apply_fields_on_blocked_stage: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            intent_classifier: Classifier for the user's request
            notes_parser: LLM-backed extraction of field updates
            merger: Merges extractions and gates stage changes
            crm_client: CRM-page collaborator (read_opportunity, write_fields, advance_stage)
            min_confidence: Lowest intent confidence acted on without asking
            apply_fields_on_blocked_stage: Write field updates even when the stage change is blocked
        """
        self.intent_classifier = intent_classifier
        self.notes_parser = notes_parser
        self.merger = merger
        self.crm_client = crm_client
        self.min_confidence = min_confidence
        self.apply_fields_on_blocked_stage = apply_fields_on_blocked_stage

    async def process(self, request: UpdateRequest) -> UpdateResult:
        """
        Process one user turn.

        Collaborator failures never raise out of here; they are reported as
        issues on a FAILED result.
        """
        start_time = time.time()
        result = await self._run(request)
        result.processing_time_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            f"Processed update request: outcome={result.outcome.value}, "
            f"writes={len(result.written_updates)}, "
            f"time={result.processing_time_ms}ms"
        )
        return result

    async def _run(self, request: UpdateRequest) -> UpdateResult:
        try:
            intent = await asyncio.to_thread(
                self.intent_classifier.classify,
                request.message,
                request.conversation_context,
            )
        except OpportunityUpdateError as e:
            logger.error(f"Intent classification failed: {e}")
            return self._failed(None, None, e.to_issue(), "I couldn't process that request right now.")

        if not intent.is_actionable or intent.confidence < self.min_confidence:
            questions = list(intent.clarification_needed) or [
                "Could you tell me which opportunity and what should change?"
            ]
            return UpdateResult(
                outcome=UpdateOutcome.NEEDS_CLARIFICATION,
                intent=intent,
                clarification_needed=questions,
                messages=questions[:1],
            )

        if intent.action is IntentAction.CREATE_OPPORTUNITY:
            return UpdateResult(
                outcome=UpdateOutcome.UNSUPPORTED,
                intent=intent,
                messages=["Creating opportunities isn't supported yet; please create it in the CRM first."],
            )

        if not intent.opportunity_identifier:
            questions = list(intent.clarification_needed)
            if IntentClassifier.CLARIFY_OPPORTUNITY not in questions:
                questions.insert(0, IntentClassifier.CLARIFY_OPPORTUNITY)
            return UpdateResult(
                outcome=UpdateOutcome.NEEDS_CLARIFICATION,
                intent=intent,
                clarification_needed=questions,
                messages=[IntentClassifier.CLARIFY_OPPORTUNITY],
            )

        try:
            opportunity = await self.crm_client.read_opportunity(intent.opportunity_identifier)
        except OpportunityUpdateError as e:
            logger.error(f"Failed to read opportunity '{intent.opportunity_identifier}': {e}")
            return self._failed(intent, None, e.to_issue(), "I couldn't read that opportunity.")

        if opportunity is None:
            message = f"I couldn't find an opportunity matching '{intent.opportunity_identifier}'."
            return UpdateResult(
                outcome=UpdateOutcome.NOT_FOUND,
                intent=intent,
                messages=[message],
                issues=[
                    UpdateIssue(
                        kind=ErrorKind.NOT_FOUND,
                        message=message,
                        context={"identifier": intent.opportunity_identifier},
                    )
                ],
            )

        if intent.action is IntentAction.SEARCH_OPPORTUNITY:
            return UpdateResult(
                outcome=UpdateOutcome.SEARCH_RESULT,
                intent=intent,
                opportunity=opportunity,
                messages=[f"{opportunity.name} is in {opportunity.stage}."],
            )

        return await self._update(request, intent, opportunity)

    async def _update(
        self,
        request: UpdateRequest,
        intent: ParsedIntent,
        opportunity: OpportunityState,
    ) -> UpdateResult:
        notes = intent.information or request.message
        try:
            extraction = await asyncio.to_thread(self.notes_parser.parse, notes, opportunity)
        except OpportunityUpdateError as e:
            logger.error(f"Extraction failed for {opportunity.id}: {e}")
            return self._failed(intent, opportunity, e.to_issue(), "I couldn't extract updates from those notes.")

        warnings: List[str] = []
        clarifications = list(intent.clarification_needed)
        if extraction.stage_change is None and intent.stage_transition is not None:
            extraction.stage_change = self._requested_stage_change(intent, opportunity, warnings, clarifications)

        merge = self.merger.merge(extraction, opportunity)
        result = UpdateResult(
            outcome=UpdateOutcome.APPLIED,
            intent=intent,
            opportunity=opportunity,
            merge=merge,
            clarification_needed=clarifications,
            missing_fields=list(merge.missing_fields),
            warnings=warnings + list(merge.warnings),
            issues=list(merge.issues),
        )

        to_write = list(merge.updates)
        if merge.stage_blocked and not self.apply_fields_on_blocked_stage:
            to_write = []

        if request.is_cancelled is not None and request.is_cancelled():
            logger.info(f"Update for {opportunity.id} cancelled before writing")
            result.outcome = UpdateOutcome.CANCELLED
            result.messages.append("Cancelled; nothing was written.")
            return result

        try:
            if to_write:
                written = await self.crm_client.write_fields(opportunity.id, to_write)
                if not written:
                    raise WriteFailedError(
                        f"CRM rejected {len(to_write)} field updates",
                        {"opportunity_id": opportunity.id, "fields": [u.field for u in to_write]},
                    )
                result.written_updates = to_write

            decision = merge.stage_decision
            if (
                decision is not None
                and decision.allowed
                and stage_key(decision.to_stage) != stage_key(opportunity.stage)
            ):
                advanced = await self.crm_client.advance_stage(opportunity.id, decision.to_stage)
                if not advanced:
                    raise WriteFailedError(
                        f"CRM rejected stage change to {decision.to_stage}",
                        {"opportunity_id": opportunity.id, "to_stage": decision.to_stage},
                    )
                result.stage_advanced_to = decision.to_stage
        except OpportunityUpdateError as e:
            logger.error(f"Write phase failed for {opportunity.id}: {e}")
            issue = e.to_issue()
            if issue.kind is ErrorKind.COLLABORATOR_ERROR:
                issue.kind = ErrorKind.WRITE_FAILED
            result.outcome = UpdateOutcome.FAILED
            result.issues.append(issue)
            result.messages.append("Saving to the CRM failed; please check the opportunity.")
            return result

        if result.stage_advanced_to:
            result.outcome = UpdateOutcome.APPLIED_WITH_STAGE
        elif merge.stage_blocked:
            result.outcome = UpdateOutcome.BLOCKED

        result.messages = self._summarize(result)
        return result

    def _requested_stage_change(
        self,
        intent: ParsedIntent,
        opportunity: OpportunityState,
        warnings: List[str],
        clarifications: List[str],
    ) -> Optional[StageChange]:
        """Stage change asked for in the request when the notes proposed none."""
        transition = intent.stage_transition
        policy = self.merger.policy

        if transition.direction is TransitionDirection.NEXT:
            target = policy.next_stage(opportunity.stage)
            if target is None:
                warnings.append(f"No stage follows {opportunity.stage}; stage left unchanged")
                return None
        else:
            target = transition.target_stage
            if not target:
                warnings.append("No target stage was given; stage left unchanged")
                if IntentClassifier.CLARIFY_TARGET_STAGE not in clarifications:
                    clarifications.append(IntentClassifier.CLARIFY_TARGET_STAGE)
                return None

        return StageChange(
            from_stage=opportunity.stage,
            to_stage=target,
            reason="Requested by user",
        )

    @staticmethod
    def _summarize(result: UpdateResult) -> List[str]:
        messages = []
        if result.written_updates:
            fields = ", ".join(u.field for u in result.written_updates)
            messages.append(f"Updated {len(result.written_updates)} fields on {result.opportunity.name}: {fields}.")
        else:
            messages.append(f"No field changes were written to {result.opportunity.name}.")

        if result.stage_advanced_to:
            messages.append(f"Moved to {result.stage_advanced_to}.")
        elif result.merge and result.merge.stage_blocked:
            decision = result.merge.stage_decision
            messages.append(
                f"Can't move to {decision.to_stage} yet. Still needed: {', '.join(decision.missing_fields)}."
            )
        messages.extend(result.clarification_needed)
        return messages

    @staticmethod
    def _failed(
        intent: Optional[ParsedIntent],
        opportunity: Optional[OpportunityState],
        issue: UpdateIssue,
        message: str,
    ) -> UpdateResult:
        return UpdateResult(
            outcome=UpdateOutcome.FAILED,
            intent=intent,
            opportunity=opportunity,
            issues=[issue],
            messages=[message],
        )
