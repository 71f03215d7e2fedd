"""
Opportunity update and stage-gate API routes.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..services import get_services
from opportunity.models import OpportunityState
from opportunity.orchestrator import UpdateRequest as OrchestratorRequest
from opportunity.stage_gates import StageGatePolicy

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / Response Models ─────────────────────────────────────

class ConversationTurn(BaseModel):
    role: str = "user"
    content: str


class UpdateRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=10000)
    conversation_context: List[ConversationTurn] = []


class StageGateEvaluationRequest(BaseModel):
    from_stage: str = Field(..., min_length=1)
    to_stage: str = Field(..., min_length=1)
    fields: Dict[str, Any] = {}


class StageGateEvaluationResponse(BaseModel):
    is_valid: bool
    from_stage: str
    to_stage: str
    missing_fields: List[str] = []
    warnings: List[str] = []
    rule_applied: bool


class RequiredFieldInfo(BaseModel):
    api_name: str
    display_name: str
    description: str


class StageGateInfo(BaseModel):
    from_stage: Optional[str]
    to_stage: str
    required_fields: List[RequiredFieldInfo]
    warning_message: Optional[str] = None


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/opportunities/update")
async def update_opportunity(request: UpdateRequest) -> Dict[str, Any]:
    """
    Apply a natural-language update to an opportunity.

    1. Classify intent  2. Read opportunity  3. Extract updates
    4. Gate stage change  5. Write fields  6. Advance stage
    """
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Update pipeline is not available")

    result = await services.orchestrator.process(
        OrchestratorRequest(
            message=request.message,
            conversation_context=[t.model_dump() for t in request.conversation_context],
        )
    )
    return result.to_dict()


@router.post("/stage-gates/evaluate", response_model=StageGateEvaluationResponse)
async def evaluate_stage_gate(request: StageGateEvaluationRequest):
    """Check whether a record with ``fields`` may move between two stages."""
    policy = _policy()
    record = OpportunityState(id="", name="", stage=request.from_stage, fields=dict(request.fields))
    validation = policy.evaluate_transition(request.from_stage, request.to_stage, record)

    return StageGateEvaluationResponse(
        is_valid=validation.is_valid,
        from_stage=request.from_stage,
        to_stage=request.to_stage,
        missing_fields=validation.missing_fields,
        warnings=validation.warnings,
        rule_applied=policy.get_rule(request.from_stage, request.to_stage) is not None,
    )


@router.get("/stage-gates", response_model=List[StageGateInfo])
async def list_stage_gates():
    """List configured stage-gate rules."""
    return [
        StageGateInfo(
            from_stage=rule.from_stage,
            to_stage=rule.to_stage,
            required_fields=[
                RequiredFieldInfo(
                    api_name=f.api_name,
                    display_name=f.display_name,
                    description=f.description,
                )
                for f in rule.required_fields
            ],
            warning_message=rule.warning_message,
        )
        for rule in _policy().rules
    ]


# ── Helpers ───────────────────────────────────────────────────────

def _policy() -> StageGatePolicy:
    services = get_services()
    if services.policy is not None:
        return services.policy
    return StageGatePolicy.from_config()
