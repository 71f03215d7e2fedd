"""
Call-note extraction.

Asks the LLM for structured field updates and repairs whatever comes back
into a well-formed ``ClaudeExtraction``.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from llm.prompt_templates import PromptTemplates
from llm.response_parser import extract_json_object

from .errors import UpstreamMalformedError
from .models import ClaudeExtraction, Confidence, FieldUpdate, OpportunityState, StageChange, StageGateRule

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "call notes"


class NotesParser:
    """
    Extracts field updates and stage changes from free-text notes.

    Every field of the upstream response is treated as optional and
    untrusted.
    """

    def __init__(
        self,
        llm_client: Any,
        field_mappings: Optional[Mapping[str, str]] = None,
        stage_gates: Optional[Sequence[StageGateRule]] = None,
    ):
        """
        Initialize the parser.

        Args:
            llm_client: Provider exposing ``generate(prompt, system=None) -> str``
            field_mappings: Natural-language to API name mapping shown to the model
            stage_gates: Stage-gate rules shown to the model
        """
        if field_mappings is None or stage_gates is None:
            from config.stages import FIELD_MAPPINGS, STAGE_GATES
            field_mappings = FIELD_MAPPINGS if field_mappings is None else field_mappings
            stage_gates = STAGE_GATES if stage_gates is None else stage_gates

        self.llm_client = llm_client
        self.field_mappings = field_mappings
        self.stage_gates = list(stage_gates)

    def parse(self, notes: str, current: OpportunityState) -> ClaudeExtraction:
        """
        Extract updates for ``current`` from ``notes``.

        Raises:
            LLMCallError: If the LLM call fails
            UpstreamMalformedError: If the response holds no JSON object
        """
        system = PromptTemplates.build_extraction_system_prompt(
            current, self.field_mappings, self.stage_gates
        )
        prompt = PromptTemplates.build_extraction_prompt(notes)

        response_text = self.llm_client.generate(prompt, system=system)
        extraction = self.parse_response(response_text)

        logger.info(
            f"Extracted {len(extraction.field_updates)} field updates for {current.id}"
            + (f", stage change to {extraction.stage_change.to_stage}" if extraction.stage_change else "")
        )
        return extraction

    def parse_response(self, response_text: str) -> ClaudeExtraction:
        """Parse-and-repair an LLM response into a ``ClaudeExtraction``."""
        data = extract_json_object(response_text)
        return self.repair(data)

    @classmethod
    def repair(cls, data: Mapping[str, Any]) -> ClaudeExtraction:
        """Build a typed extraction from an untyped payload, dropping what can't be used."""
        if not isinstance(data, Mapping):
            raise UpstreamMalformedError(f"Extraction payload must be an object, got {type(data).__name__}")

        suggestions = cls._string_list(data.get("suggestions"))
        updates: List[FieldUpdate] = []

        raw_updates = data.get("fieldUpdates")
        if not isinstance(raw_updates, list):
            if raw_updates is not None:
                logger.warning(f"fieldUpdates was {type(raw_updates).__name__}, expected list")
            raw_updates = []

        for raw in raw_updates:
            update = cls._repair_update(raw)
            if update is not None:
                updates.append(update)
            else:
                logger.warning(f"Dropped malformed field update: {str(raw)[:100]}")

        stage_change = None
        raw_change = data.get("stageChange")
        if isinstance(raw_change, Mapping):
            from_stage = cls._string(raw_change.get("from"))
            to_stage = cls._string(raw_change.get("to"))
            if from_stage and to_stage:
                stage_change = StageChange(
                    from_stage=from_stage,
                    to_stage=to_stage,
                    reason=cls._string(raw_change.get("reason")) or "",
                )
            else:
                suggestions.append("A stage change was suggested but its stages were unclear; please confirm the target stage.")
        elif raw_change is not None:
            logger.warning(f"stageChange was {type(raw_change).__name__}, expected object")

        return ClaudeExtraction(
            field_updates=updates,
            missing_fields=cls._string_list(data.get("missingFields")),
            suggestions=suggestions,
            stage_change=stage_change,
        )

    @classmethod
    def _repair_update(cls, raw: Any) -> Optional[FieldUpdate]:
        if not isinstance(raw, Mapping):
            return None
        field_name = cls._string(raw.get("field"))
        if not field_name or "value" not in raw:
            return None
        return FieldUpdate(
            field=field_name,
            value=raw.get("value"),
            confidence=Confidence.parse(raw.get("confidence"), Confidence.LOW),
            source=cls._string(raw.get("source")) or DEFAULT_SOURCE,
        )

    @staticmethod
    def _string(value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @classmethod
    def _string_list(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [s for s in (cls._string(v) for v in value) if s]
