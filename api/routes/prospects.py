"""
Prospect scoring API routes.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from config.settings import get_settings
from lead_scoring.prospect_loader import ProspectRecord
from lead_scoring.scoring_model import ProspectCriteria, ProspectScorer

logger = logging.getLogger(__name__)

router = APIRouter()


class CriteriaModel(BaseModel):
    job_titles: List[str] = Field(..., min_length=1)
    companies: List[str] = []
    keywords: List[str] = []
    location: Optional[str] = None


class ScoreRequest(BaseModel):
    criteria: CriteriaModel
    prospects: List[ProspectRecord] = Field(..., max_length=500)


class ScoredProspectResponse(BaseModel):
    name: str
    title: str
    company: str
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    score: int
    score_breakdown: Dict[str, int]
    seniority_tier: Optional[str] = None
    priority: str
    reasoning: str


class ScoreResponse(BaseModel):
    prospects: List[ScoredProspectResponse]
    total: int


@router.post("/prospects/score", response_model=ScoreResponse)
async def score_prospects(request: ScoreRequest):
    """Score and rank prospects, best first."""
    settings = get_settings()
    scorer = ProspectScorer(
        ProspectCriteria(**request.criteria.model_dump()),
        hot_threshold=settings.prospect_threshold_hot,
        warm_threshold=settings.prospect_threshold_warm,
    )
    ranked = scorer.rank(record.to_prospect() for record in request.prospects)

    return ScoreResponse(
        prospects=[
            ScoredProspectResponse(
                name=item.prospect.name,
                title=item.prospect.title,
                company=item.prospect.company,
                location=item.prospect.location,
                linkedin_url=item.prospect.linkedin_url,
                score=item.score.total,
                score_breakdown=item.score.breakdown,
                seniority_tier=item.score.seniority_tier,
                priority=item.score.priority.value,
                reasoning=item.score.reasoning,
            )
            for item in ranked
        ],
        total=len(ranked),
    )
