"""Shared fixtures for Opportunity Update Assistant tests."""

import json
import os
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure we use test/mock settings
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

from opportunity.models import FieldUpdate, OpportunityState, RequiredField, StageGateRule  # noqa: E402
from opportunity.stage_gates import StageGatePolicy  # noqa: E402


class FakeLLM:
    """Returns canned responses in order and records every call."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def generate(self, prompt: str, system: Optional[str] = None, **kwargs) -> str:
        self.calls.append({"prompt": prompt, "system": system})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class FakeCRM:
    """In-memory CRM-page collaborator."""

    def __init__(
        self,
        opportunities: Optional[List[OpportunityState]] = None,
        write_ok: bool = True,
        advance_ok: bool = True,
        write_error: Optional[Exception] = None,
    ):
        self.opportunities = {o.name: o for o in (opportunities or [])}
        self.write_ok = write_ok
        self.advance_ok = advance_ok
        self.write_error = write_error
        self.reads: List[str] = []
        self.writes: List[Any] = []
        self.stage_changes: List[Any] = []

    async def read_opportunity(self, identifier: str) -> Optional[OpportunityState]:
        self.reads.append(identifier)
        return self.opportunities.get(identifier)

    async def write_fields(self, opportunity_id: str, updates: List[FieldUpdate]) -> bool:
        if self.write_error is not None:
            raise self.write_error
        self.writes.append((opportunity_id, list(updates)))
        return self.write_ok

    async def advance_stage(self, opportunity_id: str, to_stage: str) -> bool:
        self.stage_changes.append((opportunity_id, to_stage))
        return self.advance_ok


@pytest.fixture
def client():
    """Create a FastAPI test client."""
    from api.main import app
    return TestClient(app)


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def fake_crm():
    return FakeCRM


@pytest.fixture
def discovery_policy():
    """Three-stage pipeline where Discovery -> Proposal needs a confirmed budget."""
    rules = [
        StageGateRule(
            from_stage="Discovery",
            to_stage="Proposal",
            required_fields=(
                RequiredField("budget_confirmed", "Budget Confirmed", "Customer confirmed budget"),
                RequiredField("Amount", "Amount", "Deal size", lambda v: float(v) > 0),
            ),
            warning_message="Proposal requires a confirmed budget.",
        ),
        StageGateRule(
            from_stage=None,
            to_stage="Lost",
            required_fields=(RequiredField("Loss_Reason__c", "Loss Reason", "Why it was lost"),),
        ),
    ]
    return StageGatePolicy(rules, stage_order=["Discovery", "Proposal", "Negotiation"])


@pytest.fixture
def acme_opportunity():
    return OpportunityState(
        id="006A000001",
        name="Acme",
        stage="Discovery",
        fields={"Amount": None, "budget_confirmed": None},
    )


@pytest.fixture
def update_intent_response():
    return {
        "action": "update_opportunity",
        "opportunityIdentifier": "Acme",
        "information": "Call with Acme. Deal size is $50k. Jane Doe is the economic buyer.",
        "confidence": "high",
    }


@pytest.fixture
def blocked_extraction_response():
    """Extraction proposing Discovery -> Proposal without a confirmed budget."""
    return {
        "stageChange": {"from": "Discovery", "to": "Proposal", "reason": "Demo went well"},
        "fieldUpdates": [
            {"field": "Amount", "value": "50000", "confidence": "high", "source": "Deal size is $50k"},
            {"field": "economic buyer", "value": "Jane Doe", "confidence": "high", "source": "Jane Doe"},
        ],
        "missingFields": [],
        "suggestions": ["Confirm budget on the next call"],
    }
