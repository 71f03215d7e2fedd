"""
Lead Scoring Module.

This module ranks prospects against search criteria:
- Seniority tier resolution from job titles
- Weighted 0-100 scoring (title, seniority, company, keywords, experience)
- CSV/JSON loading and export of ranked prospects
"""

from .scoring_model import (
    Prospect,
    ProspectCriteria,
    ProspectPriority,
    ProspectScore,
    ProspectScorer,
    ScoredProspect,
    resolve_seniority_tier,
)
from .prospect_loader import ProspectLoader, ProspectRecord

__all__ = [
    "Prospect",
    "ProspectCriteria",
    "ProspectPriority",
    "ProspectScore",
    "ProspectScorer",
    "ScoredProspect",
    "resolve_seniority_tier",
    "ProspectLoader",
    "ProspectRecord",
]
