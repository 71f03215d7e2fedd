"""
Prompt Templates for opportunity updates.

System and user prompts for intent parsing and call-note extraction.
"""

import json
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from opportunity.models import OpportunityState, StageGateRule


class PromptType(Enum):
    """Types of prompts."""
    INTENT = "intent"
    EXTRACTION = "extraction"


class PromptTemplates:
    """
    Manages prompt templates for the update assistant.

    Both prompts ask for JSON only; responses are still parsed defensively.
    """

    SYSTEM_PROMPTS = {
        PromptType.INTENT: """You are an intent parser for a Salesforce opportunity management system.

Parse the user's natural language request and extract:
1. What action they want to take (create_opportunity, update_opportunity, search_opportunity, or unclear)
2. Which opportunity or account they're referring to
3. Any information or notes they've provided
4. Any stage transition they want to make

OUTPUT FORMAT (JSON only):
{
  "action": "create_opportunity" | "update_opportunity" | "search_opportunity" | "unclear",
  "opportunityIdentifier": "name or account to search for",
  "accountName": "for creating new opportunities",
  "information": "any call notes or information provided",
  "stageTransition": {
    "targetStage": "specific stage name if mentioned",
    "direction": "next" | "specific"
  },
  "confidence": "high" | "medium" | "low",
  "clarificationNeeded": ["list of things that are unclear"]
}

EXAMPLES:

Input: "Update the Tribute Technology opp, moving it to Qualification"
Output: {"action": "update_opportunity", "opportunityIdentifier": "Tribute Technology", "stageTransition": {"targetStage": "Qualification", "direction": "specific"}, "confidence": "high"}

Input: "Create a new opportunity for Acme Corp, $50k deal, close date Feb 2026"
Output: {"action": "create_opportunity", "accountName": "Acme Corp", "information": "$50k deal, close date Feb 2026", "confidence": "high"}

Input: "Update Bilt Rewards opportunity with these notes: Had call with CTO. They need better deployment speed."
Output: {"action": "update_opportunity", "opportunityIdentifier": "Bilt Rewards", "information": "Had call with CTO. They need better deployment speed.", "confidence": "high"}

Input: "Move the Tribute opp to the next stage"
Output: {"action": "update_opportunity", "opportunityIdentifier": "Tribute", "stageTransition": {"direction": "next"}, "confidence": "high"}

Return ONLY valid JSON, no other text.""",

        PromptType.EXTRACTION: """You are a Salesforce field extraction assistant for a sales team.

Your task: Parse call notes and extract structured field updates for Salesforce opportunities.

CURRENT CONTEXT:
- Opportunity: {name}
- Current Stage: {stage}
- Opportunity ID: {id}
- Current Fields: {fields}

OUTPUT FORMAT:
Return ONLY valid JSON with this EXACT structure:
{{
  "stageChange": {{"from": "current stage name", "to": "proposed new stage name", "reason": "brief explanation"}},
  "fieldUpdates": [
    {{"field": "Salesforce_API_Field_Name", "value": "extracted value", "confidence": "high", "source": "direct quote from notes"}}
  ],
  "missingFields": ["API names of required fields not yet populated"],
  "suggestions": ["helpful guidance for user"]
}}

FIELD MAPPING RULES:
{field_mappings}

STAGE-GATE REQUIREMENTS:
{stage_gates}

EXTRACTION RULES:
1. Be conservative - only extract fields you're confident about
2. Use "high" confidence for explicit mentions, "medium" for implied, "low" for uncertain
3. Always include the source quote that supports your extraction
4. For amounts, extract numeric value only (no currency symbols)
5. For dates, use YYYY-MM-DD format
6. Consider the current stage when deciding if a stage change is appropriate
7. Check stage-gate requirements - list missing required fields for target stage
8. If notes suggest readiness for next stage, propose stage change
9. Preserve customer quotes exactly as they appear in notes
10. If information is ambiguous, set low confidence and add to suggestions

Now parse the provided call notes and return ONLY the JSON response.""",
    }

    USER_TEMPLATES = {
        "intent": "{context}User request: {message}",
        "extraction": "Parse these call notes and extract Salesforce field updates:\n\n{notes}",
    }

    @classmethod
    def get_system_prompt(cls, prompt_type: PromptType, **kwargs) -> str:
        """
        Get system prompt for a given type.

        Args:
            prompt_type: Type of prompt
            **kwargs: Template variables (extraction prompt only)

        Returns:
            Formatted system prompt
        """
        prompt = cls.SYSTEM_PROMPTS[prompt_type]
        if kwargs:
            prompt = prompt.format(**kwargs)
        return prompt

    @classmethod
    def build_intent_prompt(
        cls,
        message: str,
        conversation_context: Optional[Sequence[Mapping[str, str]]] = None,
    ) -> str:
        """Build the user prompt for intent parsing, with up to five prior turns."""
        context = ""
        if conversation_context:
            lines = ["Conversation context:"]
            for turn in list(conversation_context)[-5:]:
                lines.append(f"{turn.get('role', 'user')}: {turn.get('content', '')}")
            context = "\n".join(lines) + "\n\n"
        return cls.USER_TEMPLATES["intent"].format(context=context, message=message)

    @classmethod
    def build_extraction_system_prompt(
        cls,
        state: OpportunityState,
        field_mappings: Mapping[str, str],
        stage_gates: Sequence[StageGateRule],
    ) -> str:
        """Build the extraction system prompt with the current record as context."""
        mapping_text = "\n".join(f'- "{term}" -> {api}' for term, api in field_mappings.items())
        gate_lines: List[str] = []
        for rule in stage_gates:
            origin = rule.from_stage or "Any stage"
            fields = ", ".join(f.api_name for f in rule.required_fields)
            gate_lines.append(f"{origin} -> {rule.to_stage}: {fields}")

        return cls.get_system_prompt(
            PromptType.EXTRACTION,
            name=state.name,
            stage=state.stage,
            id=state.id,
            fields=json.dumps(state.fields, indent=2, default=str),
            field_mappings=mapping_text,
            stage_gates="\n".join(gate_lines),
        )

    @classmethod
    def build_extraction_prompt(cls, notes: str) -> str:
        return cls.USER_TEMPLATES["extraction"].format(notes=notes)

