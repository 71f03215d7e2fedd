"""
Intent Classification for opportunity requests.

Uses the LLM to identify what the user wants done, then normalizes the
response into a well-formed ParsedIntent.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from llm.prompt_templates import PromptTemplates, PromptType
from llm.response_parser import extract_json_object

from .errors import UpstreamMalformedError
from .models import (
    Confidence,
    IntentAction,
    ParsedIntent,
    StageTransition,
    TransitionDirection,
)

logger = logging.getLogger(__name__)


class IntentClassifier:
    """
    Classifies user requests about opportunities.

    The LLM does the understanding; this class validates the shape of what
    comes back. Without an LLM client a keyword pass gives a best-effort
    answer, never above medium confidence.
    """

    # Action keywords for rule-based classification
    ACTION_KEYWORDS = {
        IntentAction.CREATE_OPPORTUNITY: [
            "create", "new opportunity", "new opp", "open an opp", "add an opportunity",
        ],
        IntentAction.UPDATE_OPPORTUNITY: [
            "update", "move", "advance", "change", "set", "notes", "call with",
            "log", "next stage",
        ],
        IntentAction.SEARCH_OPPORTUNITY: [
            "find", "search", "look up", "lookup", "show me", "where is",
        ],
    }

    NEXT_STAGE_PATTERN = re.compile(r"\bnext stage\b", re.IGNORECASE)
    TO_STAGE_PATTERN = re.compile(r"\b(?:to|into)\s+(?:stage\s+)?([A-Z][\w&]*(?:\s+[A-Z&][\w&]*)*)")
    IDENTIFIER_PATTERN = re.compile(
        r"\b(?:the\s+)?([A-Z][\w.&-]*(?:\s+[A-Z][\w.&-]*)*)\s+(?:opp|opportunity|deal|account)\b"
    )

    CLARIFY_ACTION = "Should I create, update, or search for an opportunity?"
    CLARIFY_TARGET_STAGE = "Which stage should the opportunity move to?"
    CLARIFY_OPPORTUNITY = "Which opportunity do you mean?"
    CLARIFY_ACCOUNT = "Which account is the new opportunity for?"
    CLARIFY_REPHRASE = "I couldn't understand that request. Could you rephrase it?"

    def __init__(self, llm_client: Optional[Any] = None):
        """
        Initialize the intent classifier.

        Args:
            llm_client: Provider exposing ``generate(prompt, system=None) -> str``
        """
        self.llm_client = llm_client

    def classify(
        self,
        raw_text: str,
        conversation_context: Optional[Sequence[Mapping[str, str]]] = None,
    ) -> ParsedIntent:
        """
        Classify a user request.

        Args:
            raw_text: The user's message
            conversation_context: Optional previous messages (role/content dicts)

        Returns:
            A well-formed ParsedIntent; malformed upstream output yields UNCLEAR/LOW

        Raises:
            LLMCallError: If the LLM provider call itself fails
        """
        if not raw_text or not raw_text.strip():
            return ParsedIntent(
                action=IntentAction.UNCLEAR,
                confidence=Confidence.LOW,
                clarification_needed=["What would you like to do with an opportunity?"],
            )

        if self.llm_client is None:
            return self._rule_based_classify(raw_text)

        system = PromptTemplates.get_system_prompt(PromptType.INTENT)
        prompt = PromptTemplates.build_intent_prompt(raw_text, conversation_context)
        response_text = self.llm_client.generate(prompt, system=system)

        try:
            data = extract_json_object(response_text)
        except UpstreamMalformedError as e:
            logger.error(f"Failed to parse intent response: {e}")
            return ParsedIntent(
                action=IntentAction.UNCLEAR,
                confidence=Confidence.LOW,
                clarification_needed=[self.CLARIFY_REPHRASE],
            )

        intent = self.normalize(data)
        logger.debug(f"Classified intent: {intent.action.value} (confidence={intent.confidence.value})")
        return intent

    def normalize(self, data: Mapping[str, Any]) -> ParsedIntent:
        """Validate and repair an untyped intent payload."""
        clarifications = self._string_list(data.get("clarificationNeeded"))
        confidence = Confidence.parse(data.get("confidence"), Confidence.LOW)

        raw_action = data.get("action")
        action = self._parse_action(raw_action)
        if action is None:
            logger.warning(f"Unrecognized intent action: {raw_action!r}")
            action = IntentAction.UNCLEAR
            confidence = Confidence.LOW
            self._add_question(clarifications, self.CLARIFY_ACTION)

        identifier = self._string(data.get("opportunityIdentifier"))
        account_name = self._string(data.get("accountName"))
        information = self._string(data.get("information"))

        transition, confidence = self._normalize_transition(
            data.get("stageTransition"), confidence, clarifications
        )

        if action in (IntentAction.UPDATE_OPPORTUNITY, IntentAction.SEARCH_OPPORTUNITY) and not identifier:
            identifier = account_name
            if not identifier:
                confidence = Confidence.LOW
                self._add_question(clarifications, self.CLARIFY_OPPORTUNITY)

        if action is IntentAction.CREATE_OPPORTUNITY and not account_name:
            confidence = min(confidence, Confidence.MEDIUM)
            self._add_question(clarifications, self.CLARIFY_ACCOUNT)

        if action is IntentAction.UNCLEAR:
            confidence = Confidence.LOW

        return ParsedIntent(
            action=action,
            confidence=confidence,
            opportunity_identifier=identifier,
            account_name=account_name,
            information=information,
            stage_transition=transition,
            clarification_needed=clarifications,
        )

    def _normalize_transition(
        self,
        raw: Any,
        confidence: Confidence,
        clarifications: List[str],
    ) -> Tuple[Optional[StageTransition], Confidence]:
        if not isinstance(raw, Mapping):
            return None, confidence

        target = self._string(raw.get("targetStage"))
        direction = self._parse_direction(raw.get("direction"))

        if direction is None:
            if target:
                direction = TransitionDirection.SPECIFIC
            else:
                return None, confidence

        if direction is TransitionDirection.SPECIFIC and not target:
            confidence = min(confidence, Confidence.MEDIUM)
            self._add_question(clarifications, self.CLARIFY_TARGET_STAGE)

        if direction is TransitionDirection.NEXT:
            target = None

        return StageTransition(target_stage=target, direction=direction), confidence

    def _rule_based_classify(self, raw_text: str) -> ParsedIntent:
        """Keyword classification used when no LLM is configured."""
        text_lower = raw_text.lower()
        scores: Dict[IntentAction, float] = {}

        for action, keywords in self.ACTION_KEYWORDS.items():
            score = 0.0
            for keyword in keywords:
                if re.search(rf"\b{re.escape(keyword)}\b", text_lower):
                    score += len(keyword.split()) * 0.5
            if score > 0:
                scores[action] = score

        if not scores:
            return ParsedIntent(
                action=IntentAction.UNCLEAR,
                confidence=Confidence.LOW,
                clarification_needed=[self.CLARIFY_ACTION],
            )

        ranked = sorted(scores.items(), key=lambda x: x[1], reverse=True)
        action, top_score = ranked[0]
        ambiguous = len(ranked) > 1 and ranked[1][1] == top_score

        payload: Dict[str, Any] = {
            "action": action.value,
            "confidence": "low" if ambiguous else "medium",
            "information": raw_text.strip(),
        }

        identifier_match = self.IDENTIFIER_PATTERN.search(raw_text)
        if identifier_match:
            key = "accountName" if action is IntentAction.CREATE_OPPORTUNITY else "opportunityIdentifier"
            payload[key] = identifier_match.group(1)

        if self.NEXT_STAGE_PATTERN.search(raw_text):
            payload["stageTransition"] = {"direction": "next"}
        else:
            stage_match = self.TO_STAGE_PATTERN.search(raw_text)
            if stage_match and action is IntentAction.UPDATE_OPPORTUNITY:
                payload["stageTransition"] = {"targetStage": stage_match.group(1), "direction": "specific"}

        intent = self.normalize(payload)
        intent.confidence = min(intent.confidence, Confidence.MEDIUM)
        return intent

    @staticmethod
    def _parse_action(value: Any) -> Optional[IntentAction]:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for action in IntentAction:
            if action.value == normalized:
                return action
        return None

    @staticmethod
    def _parse_direction(value: Any) -> Optional[TransitionDirection]:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for direction in TransitionDirection:
            if direction.value == normalized:
                return direction
        return None

    @staticmethod
    def _add_question(questions: List[str], question: str):
        if question not in questions:
            questions.append(question)

    @staticmethod
    def _string(value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @classmethod
    def _string_list(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [s for s in (cls._string(v) for v in value) if s]
