"""Tests for call-note extraction and LLM response parsing."""

import pytest

from llm.prompt_templates import PromptTemplates, PromptType
from llm.response_parser import extract_json, extract_json_object, strip_code_fences
from opportunity.errors import LLMCallError, UpstreamMalformedError
from opportunity.models import Confidence
from opportunity.notes_parser import NotesParser


# ── Response parsing ──────────────────────────────────

class TestResponseParser:
    def test_strip_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_json(self):
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_json_inside_prose(self):
        text = 'Here is the result: {"action": "unclear"} Let me know!'
        assert extract_json(text) == {"action": "unclear"}

    def test_empty_raises(self):
        with pytest.raises(UpstreamMalformedError):
            extract_json("   ")

    def test_garbage_raises(self):
        with pytest.raises(UpstreamMalformedError):
            extract_json("I could not parse those notes, sorry.")

    def test_object_required(self):
        with pytest.raises(UpstreamMalformedError):
            extract_json_object("[1, 2, 3]")


class TestPromptTemplates:
    def test_intent_prompt_keeps_last_five_turns(self):
        context = [{"role": "user", "content": f"turn {i}"} for i in range(8)]
        prompt = PromptTemplates.build_intent_prompt("move it", context)
        assert "turn 2" not in prompt
        assert "turn 3" in prompt and "turn 7" in prompt
        assert prompt.endswith("User request: move it")

    def test_intent_system_prompt_is_literal(self):
        assert '"action":' in PromptTemplates.get_system_prompt(PromptType.INTENT)

    def test_extraction_prompt_includes_context(self, acme_opportunity, discovery_policy):
        prompt = PromptTemplates.build_extraction_system_prompt(
            acme_opportunity, {"deal size": "Amount"}, discovery_policy.rules
        )
        assert "Opportunity: Acme" in prompt
        assert '- "deal size" -> Amount' in prompt
        assert "Discovery -> Proposal: budget_confirmed, Amount" in prompt
        assert "Any stage -> Lost: Loss_Reason__c" in prompt
        assert '"fieldUpdates": [' in prompt


# ── Notes parser ──────────────────────────────────────

class TestNotesParser:
    def test_parse_well_formed(self, fake_llm, acme_opportunity, blocked_extraction_response):
        llm = fake_llm(blocked_extraction_response)
        parser = NotesParser(llm)

        extraction = parser.parse("Deal size is $50k", acme_opportunity)

        assert len(extraction.field_updates) == 2
        assert extraction.field_updates[0].confidence is Confidence.HIGH
        assert extraction.stage_change.to_stage == "Proposal"
        assert extraction.suggestions == ["Confirm budget on the next call"]
        assert "Opportunity: Acme" in llm.calls[0]["system"]
        assert "Deal size is $50k" in llm.calls[0]["prompt"]

    def test_fenced_response(self, fake_llm, acme_opportunity):
        llm = fake_llm('```json\n{"fieldUpdates": [{"field": "NextStep", "value": "Demo"}]}\n```')
        extraction = NotesParser(llm).parse("notes", acme_opportunity)
        assert extraction.field_updates[0].field == "NextStep"

    def test_malformed_response_raises(self, fake_llm, acme_opportunity):
        with pytest.raises(UpstreamMalformedError):
            NotesParser(fake_llm("no json here")).parse("notes", acme_opportunity)

    def test_llm_error_propagates(self, fake_llm, acme_opportunity):
        llm = fake_llm(LLMCallError("throttled"))
        with pytest.raises(LLMCallError):
            NotesParser(llm).parse("notes", acme_opportunity)


class TestRepair:
    def test_drops_malformed_updates(self):
        extraction = NotesParser.repair({
            "fieldUpdates": [
                {"field": "Amount", "value": 100},
                {"field": "Champion__c"},
                {"value": "orphan"},
                "not an object",
                {"field": "  ", "value": "blank name"},
            ]
        })
        assert [u.field for u in extraction.field_updates] == ["Amount"]

    def test_defaults_for_optional_parts(self):
        extraction = NotesParser.repair({"fieldUpdates": [{"field": "Amount", "value": 100, "confidence": "sure"}]})
        update = extraction.field_updates[0]
        assert update.confidence is Confidence.LOW
        assert update.source == "call notes"

    def test_confidence_case_insensitive(self):
        extraction = NotesParser.repair({"fieldUpdates": [{"field": "Amount", "value": 1, "confidence": " High "}]})
        assert extraction.field_updates[0].confidence is Confidence.HIGH

    def test_field_updates_not_a_list(self):
        extraction = NotesParser.repair({"fieldUpdates": {"field": "Amount"}})
        assert extraction.field_updates == []

    def test_incomplete_stage_change_dropped(self):
        extraction = NotesParser.repair({"stageChange": {"to": "Proposal"}})
        assert extraction.stage_change is None
        assert len(extraction.suggestions) == 1

    def test_string_lists_cleaned(self):
        extraction = NotesParser.repair({"missingFields": ["Amount", 3, "", None], "suggestions": "not a list"})
        assert extraction.missing_fields == ["Amount"]
        assert extraction.suggestions == []

    def test_empty_payload(self):
        extraction = NotesParser.repair({})
        assert extraction.field_updates == []
        assert extraction.stage_change is None
