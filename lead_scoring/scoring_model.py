"""
Prospect Scoring Model.

Rule-based 0-100 score for how well a prospect matches the search criteria,
split into five weighted factors.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from config.prospect_scoring import (
    COMPANY_SUFFIXES,
    MAX_SCORE,
    SCORING_WEIGHTS,
    SENIORITY_KEYWORDS,
    SENIORITY_SCORES,
    SENIORITY_TIERS,
    STOPWORDS,
)

logger = logging.getLogger(__name__)

_TERM = re.compile(r"[a-z0-9][a-z0-9+#]*")


class ProspectPriority(Enum):
    """Prospect priority levels."""
    HOT = "hot"      # Score >= 70 - reach out first
    WARM = "warm"    # Score 50-69
    COLD = "cold"    # Score < 50


@dataclass
class Prospect:
    """A candidate lead as captured from a profile."""
    name: str
    title: str = ""
    company: str = ""
    location: Optional[str] = None
    headline: Optional[str] = None
    experience: Optional[str] = None
    linkedin_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "headline": self.headline,
            "experience": self.experience,
            "linkedin_url": self.linkedin_url,
        }


@dataclass
class ProspectCriteria:
    """What the caller is looking for."""
    job_titles: List[str] = field(default_factory=list)
    companies: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    location: Optional[str] = None


@dataclass
class ProspectScore:
    """Prospect score result."""
    total: int  # 0-100
    breakdown: Dict[str, int] = field(default_factory=dict)
    seniority_tier: Optional[str] = None
    priority: ProspectPriority = ProspectPriority.COLD
    reasoning: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.total,
            "score_breakdown": dict(self.breakdown),
            "seniority_tier": self.seniority_tier,
            "priority": self.priority.value,
            "reasoning": self.reasoning,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ScoredProspect:
    """A prospect together with its score."""
    prospect: Prospect
    score: ProspectScore

    def to_dict(self) -> Dict[str, Any]:
        data = self.prospect.to_dict()
        data.update(self.score.to_dict())
        return data


def _contains_phrase(text: str, phrase: str) -> bool:
    """Case-insensitive whole-word phrase match."""
    phrase = phrase.strip()
    if not phrase or not text:
        return False
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text, re.IGNORECASE) is not None


def _terms(text: Optional[str]) -> Set[str]:
    return {t for t in _TERM.findall((text or "").lower()) if t not in STOPWORDS}


def _ratio(matched: int, total: int) -> float:
    return matched / total if total else 0.0


def resolve_seniority_tier(title: Optional[str]) -> Optional[str]:
    """
    Resolve the seniority tier of a job title.

    Keywords match on word boundaries, case-insensitively. A match that sits
    inside a longer keyword match is discarded, so "Vice President" is VP and
    not C-Level. Among the remaining matches the most senior tier wins.

    Returns:
        Tier name, or None when no keyword matches
    """
    if not title:
        return None

    matches: List[Tuple[int, int, str]] = []
    for tier in SENIORITY_TIERS:
        for keyword in SENIORITY_KEYWORDS[tier]:
            pattern = rf"(?<!\w){re.escape(keyword)}(?!\w)"
            for m in re.finditer(pattern, title, re.IGNORECASE):
                matches.append((m.start(), m.end(), tier))

    kept = [
        (start, end, tier)
        for start, end, tier in matches
        if not any(
            s <= start and end <= e and (e - s) > (end - start)
            for s, e, _ in matches
        )
    ]
    if not kept:
        return None

    found = {tier for _, _, tier in kept}
    for tier in SENIORITY_TIERS:
        if tier in found:
            return tier
    return None


class ProspectScorer:
    """
    Scores prospects against search criteria.

    Scoring Rules (0-100):
    - Title match: up to 30
    - Seniority: up to 25 (C-Level 25, VP 20, Director 15, Manager 10, IC 5)
    - Company relevance: up to 20
    - Keyword match: up to 15
    - Experience relevance: up to 10

    Factors without criteria to match against contribute 0.

    Thresholds:
    - Score >= 70: Hot
    - Score 50-69: Warm
    - Score < 50: Cold
    """

    HOT_THRESHOLD = 70
    WARM_THRESHOLD = 50

    def __init__(
        self,
        criteria: ProspectCriteria,
        hot_threshold: Optional[int] = None,
        warm_threshold: Optional[int] = None,
    ):
        """
        Initialize the prospect scorer.

        Args:
            criteria: Target titles, companies and keywords
            hot_threshold: Override for the hot threshold
            warm_threshold: Override for the warm threshold
        """
        self.criteria = criteria
        self.weights = dict(SCORING_WEIGHTS)
        self.hot_threshold = self.HOT_THRESHOLD if hot_threshold is None else hot_threshold
        self.warm_threshold = self.WARM_THRESHOLD if warm_threshold is None else warm_threshold

    def score(self, prospect: Prospect) -> ProspectScore:
        """
        Score a single prospect.

        Args:
            prospect: Prospect to score

        Returns:
            ProspectScore with per-factor breakdown
        """
        reasons: List[str] = []

        title_points, best_title = self._score_title(prospect.title)
        if best_title:
            reasons.append(f"title matches '{best_title}'")

        tier = resolve_seniority_tier(prospect.title)
        seniority_points = self._score_seniority(tier)
        if tier:
            reasons.append(f"{tier} seniority")

        company_points = self._score_company(prospect.company)
        if company_points == self.weights["companyRelevance"]:
            reasons.append(f"works at target company {prospect.company}")

        keyword_points, matched_keywords = self._score_keywords(prospect)
        if matched_keywords:
            reasons.append(f"keywords: {', '.join(matched_keywords)}")

        experience_points = self._score_experience(prospect)
        if experience_points:
            reasons.append("relevant experience")

        breakdown = {
            "titleMatch": title_points,
            "seniority": seniority_points,
            "companyRelevance": company_points,
            "keywordMatch": keyword_points,
            "experienceRelevance": experience_points,
        }
        total = max(0, min(MAX_SCORE, sum(breakdown.values())))

        reasoning = "; ".join(reasons) if reasons else "no match against the criteria"
        score = ProspectScore(
            total=total,
            breakdown=breakdown,
            seniority_tier=tier,
            priority=self._get_priority(total),
            reasoning=reasoning[0].upper() + reasoning[1:],
        )
        logger.debug(f"Scored {prospect.name}: {total} ({score.priority.value})")
        return score

    def rank(self, prospects: Iterable[Prospect]) -> List[ScoredProspect]:
        """
        Score and sort prospects, best first.

        With a criteria location, prospects whose known location does not
        contain it are left out; prospects without a location are kept.
        """
        scored = [
            ScoredProspect(prospect=p, score=self.score(p))
            for p in prospects
            if self.matches_location(p)
        ]
        scored.sort(key=lambda s: s.score.total, reverse=True)

        if scored:
            average = sum(s.score.total for s in scored) / len(scored)
            logger.info(f"Ranked {len(scored)} prospects (average score {average:.1f})")
        return scored

    def matches_location(self, prospect: Prospect) -> bool:
        wanted = (self.criteria.location or "").strip()
        if not wanted or not prospect.location:
            return True
        return _contains_phrase(prospect.location, wanted)

    def _score_title(self, title: str) -> Tuple[int, Optional[str]]:
        weight = self.weights["titleMatch"]
        if not title or not self.criteria.job_titles:
            return 0, None

        best_ratio, best_target = 0.0, None
        title_terms = _terms(title)
        for target in self.criteria.job_titles:
            if not target.strip():
                continue
            if _contains_phrase(title, target) or _contains_phrase(target, title):
                return weight, target
            target_terms = _terms(target)
            ratio = _ratio(len(target_terms & title_terms), len(target_terms))
            if ratio > best_ratio:
                best_ratio, best_target = ratio, target

        return round(weight * best_ratio), best_target if best_ratio >= 0.5 else None

    def _score_seniority(self, tier: Optional[str]) -> int:
        if tier is None:
            return 0
        top = max(SENIORITY_SCORES.values())
        return round(self.weights["seniority"] * SENIORITY_SCORES[tier] / top)

    def _score_company(self, company: str) -> int:
        weight = self.weights["companyRelevance"]
        if not company or not self.criteria.companies:
            return 0

        normalized = self.normalize_company(company)
        best = 0.0
        for target in self.criteria.companies:
            wanted = self.normalize_company(target)
            if not wanted:
                continue
            if wanted == normalized or _contains_phrase(normalized, wanted) or _contains_phrase(wanted, normalized):
                return weight
            wanted_terms = set(wanted.split())
            best = max(best, _ratio(len(wanted_terms & set(normalized.split())), len(wanted_terms)))
        return round(weight * best)

    def _score_keywords(self, prospect: Prospect) -> Tuple[int, List[str]]:
        keywords = [k for k in self.criteria.keywords if k.strip()]
        if not keywords:
            return 0, []

        text = " ".join(
            part for part in (prospect.title, prospect.headline, prospect.experience, prospect.company) if part
        )
        matched = [k for k in keywords if _contains_phrase(text, k)]
        return round(self.weights["keywordMatch"] * _ratio(len(matched), len(keywords))), matched

    def _score_experience(self, prospect: Prospect) -> int:
        text = prospect.experience or prospect.headline
        if not text:
            return 0

        terms: Dict[str, None] = {}
        for keyword in self.criteria.keywords:
            if keyword.strip():
                terms[keyword.strip().lower()] = None
        for title in self.criteria.job_titles:
            for term in _terms(title):
                terms[term] = None
        if not terms:
            return 0

        matched = sum(1 for term in terms if _contains_phrase(text, term))
        return round(self.weights["experienceRelevance"] * _ratio(matched, len(terms)))

    def _get_priority(self, total: int) -> ProspectPriority:
        if total >= self.hot_threshold:
            return ProspectPriority.HOT
        if total >= self.warm_threshold:
            return ProspectPriority.WARM
        return ProspectPriority.COLD

    @staticmethod
    def normalize_company(name: str) -> str:
        """Lowercase, drop punctuation and legal suffixes."""
        tokens = re.findall(r"[a-z0-9&]+", (name or "").lower())
        return " ".join(t for t in tokens if t not in COMPANY_SUFFIXES)
