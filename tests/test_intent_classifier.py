"""Tests for intent classification."""

import pytest

from opportunity.errors import LLMCallError
from opportunity.intent_classifier import IntentClassifier
from opportunity.models import Confidence, IntentAction, TransitionDirection


def _classify(fake_llm, payload, text="do something"):
    return IntentClassifier(llm_client=fake_llm(payload)).classify(text)


class TestLLMClassification:
    def test_well_formed_update(self, fake_llm):
        intent = _classify(fake_llm, {
            "action": "update_opportunity",
            "opportunityIdentifier": "Tribute Technology",
            "stageTransition": {"targetStage": "Qualification", "direction": "specific"},
            "confidence": "high",
        })
        assert intent.action is IntentAction.UPDATE_OPPORTUNITY
        assert intent.opportunity_identifier == "Tribute Technology"
        assert intent.stage_transition.target_stage == "Qualification"
        assert intent.stage_transition.direction is TransitionDirection.SPECIFIC
        assert intent.confidence is Confidence.HIGH
        assert intent.clarification_needed == []

    def test_unknown_action_is_unclear(self, fake_llm):
        intent = _classify(fake_llm, {"action": "delete_everything", "confidence": "high"})
        assert intent.action is IntentAction.UNCLEAR
        assert intent.confidence is Confidence.LOW
        assert intent.clarification_needed

    def test_specific_without_target_caps_confidence(self, fake_llm):
        intent = _classify(fake_llm, {
            "action": "update_opportunity",
            "opportunityIdentifier": "Acme",
            "stageTransition": {"direction": "specific"},
            "confidence": "high",
        })
        assert intent.confidence is Confidence.MEDIUM
        assert IntentClassifier.CLARIFY_TARGET_STAGE in intent.clarification_needed

    def test_target_without_direction_is_specific(self, fake_llm):
        intent = _classify(fake_llm, {
            "action": "update_opportunity",
            "opportunityIdentifier": "Acme",
            "stageTransition": {"targetStage": "Proposal"},
            "confidence": "high",
        })
        assert intent.stage_transition.direction is TransitionDirection.SPECIFIC
        assert intent.confidence is Confidence.HIGH

    def test_next_direction_drops_target(self, fake_llm):
        intent = _classify(fake_llm, {
            "action": "update_opportunity",
            "opportunityIdentifier": "Acme",
            "stageTransition": {"direction": "next", "targetStage": "Proposal"},
            "confidence": "high",
        })
        assert intent.stage_transition.direction is TransitionDirection.NEXT
        assert intent.stage_transition.target_stage is None

    def test_update_without_identifier(self, fake_llm):
        intent = _classify(fake_llm, {"action": "update_opportunity", "confidence": "high"})
        assert intent.confidence is Confidence.LOW
        assert IntentClassifier.CLARIFY_OPPORTUNITY in intent.clarification_needed

    def test_account_name_used_as_identifier(self, fake_llm):
        intent = _classify(fake_llm, {"action": "search_opportunity", "accountName": "Bilt", "confidence": "high"})
        assert intent.opportunity_identifier == "Bilt"
        assert intent.confidence is Confidence.HIGH

    def test_create_without_account(self, fake_llm):
        intent = _classify(fake_llm, {"action": "create_opportunity", "confidence": "high"})
        assert intent.confidence is Confidence.MEDIUM
        assert IntentClassifier.CLARIFY_ACCOUNT in intent.clarification_needed

    def test_malformed_output_is_unclear(self, fake_llm):
        intent = _classify(fake_llm, "Sure! I think they want to update something.")
        assert intent.action is IntentAction.UNCLEAR
        assert intent.confidence is Confidence.LOW
        assert intent.clarification_needed

    def test_non_object_output_is_unclear(self, fake_llm):
        intent = _classify(fake_llm, '["update_opportunity"]')
        assert intent.action is IntentAction.UNCLEAR

    def test_unclear_always_has_question(self, fake_llm):
        intent = _classify(fake_llm, {"action": "unclear", "confidence": "high"})
        assert intent.confidence is Confidence.LOW
        assert len(intent.clarification_needed) >= 1

    def test_llm_error_propagates(self, fake_llm):
        classifier = IntentClassifier(llm_client=fake_llm(LLMCallError("timeout")))
        with pytest.raises(LLMCallError):
            classifier.classify("update Acme")

    def test_context_sent_to_llm(self, fake_llm):
        llm = fake_llm({"action": "unclear"})
        IntentClassifier(llm_client=llm).classify(
            "move it forward", [{"role": "assistant", "content": "Which opp?"}]
        )
        assert "assistant: Which opp?" in llm.calls[0]["prompt"]
        assert "intent parser" in llm.calls[0]["system"]

    def test_blank_message_skips_llm(self, fake_llm):
        llm = fake_llm()
        intent = IntentClassifier(llm_client=llm).classify("   ")
        assert intent.action is IntentAction.UNCLEAR
        assert llm.calls == []


class TestRuleBasedClassification:
    @pytest.fixture
    def classifier(self):
        return IntentClassifier()

    def test_next_stage_update(self, classifier):
        intent = classifier.classify("Move the Acme opportunity to the next stage")
        assert intent.action is IntentAction.UPDATE_OPPORTUNITY
        assert intent.opportunity_identifier == "Acme"
        assert intent.stage_transition.direction is TransitionDirection.NEXT
        assert intent.confidence is Confidence.MEDIUM

    def test_search(self, classifier):
        intent = classifier.classify("Find the Bilt Rewards deal")
        assert intent.action is IntentAction.SEARCH_OPPORTUNITY
        assert intent.opportunity_identifier == "Bilt Rewards"

    def test_never_high_confidence(self, classifier):
        intent = classifier.classify("Update the Tribute opp, move it to Qualification")
        assert intent.confidence <= Confidence.MEDIUM

    def test_no_keywords_is_unclear(self, classifier):
        intent = classifier.classify("hello there")
        assert intent.action is IntentAction.UNCLEAR
        assert intent.clarification_needed
