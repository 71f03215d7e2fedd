"""Tests for prospect scoring."""

import pytest

from config.prospect_scoring import MAX_SCORE, SENIORITY_SCORES
from lead_scoring.scoring_model import (
    Prospect,
    ProspectCriteria,
    ProspectPriority,
    ProspectScorer,
    resolve_seniority_tier,
)


@pytest.fixture
def criteria():
    return ProspectCriteria(
        job_titles=["CTO", "VP Engineering"],
        companies=["Acme Corp"],
        keywords=["kubernetes", "cloud"],
    )


@pytest.fixture
def scorer(criteria):
    return ProspectScorer(criteria)


# ── Seniority ─────────────────────────────────────────

class TestSeniorityTier:
    @pytest.mark.parametrize("title, tier", [
        ("Senior Director of Engineering", "Director"),
        ("CTO", "C-Level"),
        ("CTO and Engineering Manager", "C-Level"),
        ("Engineering Manager, reporting to the CTO", "C-Level"),
        ("Vice President of Sales", "VP"),
        ("SVP, Platform", "VP"),
        ("Head of Infrastructure", "Director"),
        ("Director", "Director"),
        ("Team Lead", "Manager"),
        ("Software Engineer", "IC"),
        ("Chief Revenue Officer", "C-Level"),
    ])
    def test_resolves_tier(self, title, tier):
        assert resolve_seniority_tier(title) == tier

    def test_case_insensitive(self):
        assert resolve_seniority_tier("vp of marketing") == "VP"

    @pytest.mark.parametrize("title", ["", None, "Barista", "Engineering"])
    def test_no_tier(self, title):
        assert resolve_seniority_tier(title) is None

    def test_director_points(self, scorer):
        score = scorer.score(Prospect(name="A", title="Senior Director of Engineering"))
        assert score.seniority_tier == "Director"
        assert score.breakdown["seniority"] == SENIORITY_SCORES["Director"]

    def test_c_level_points(self, scorer):
        score = scorer.score(Prospect(name="A", title="CTO / Engineering Manager"))
        assert score.breakdown["seniority"] == SENIORITY_SCORES["C-Level"]


# ── Factors ───────────────────────────────────────────

class TestScoringFactors:
    def test_perfect_match(self, scorer):
        prospect = Prospect(
            name="Jane Doe",
            title="CTO",
            company="Acme, Inc.",
            headline="Kubernetes and cloud leader",
            experience="Led the cloud migration to Kubernetes as CTO, previously VP Engineering",
        )
        score = scorer.score(prospect)

        assert score.breakdown == {
            "titleMatch": 30,
            "seniority": 25,
            "companyRelevance": 20,
            "keywordMatch": 15,
            "experienceRelevance": 10,
        }
        assert score.total == MAX_SCORE
        assert score.priority is ProspectPriority.HOT
        assert "target company" in score.reasoning

    def test_partial_keyword_match_scales(self, criteria):
        criteria.keywords = ["kubernetes", "cloud", "terraform"]
        score = ProspectScorer(criteria).score(Prospect(name="A", headline="Kubernetes, cloud"))
        assert score.breakdown["keywordMatch"] == 10

    def test_partial_title_overlap(self, scorer):
        score = scorer.score(Prospect(name="A", title="Director of Engineering"))
        assert 0 < score.breakdown["titleMatch"] < 30

    def test_company_suffixes_ignored(self):
        assert ProspectScorer.normalize_company("Acme Corp.") == ProspectScorer.normalize_company("ACME, Inc")

    def test_unrelated_company(self, scorer):
        score = scorer.score(Prospect(name="A", title="CTO", company="Globex"))
        assert score.breakdown["companyRelevance"] == 0

    def test_no_criteria_no_points(self):
        score = ProspectScorer(ProspectCriteria()).score(Prospect(name="A", title="Barista", company="Cafe"))
        assert score.total == 0
        assert score.priority is ProspectPriority.COLD
        assert score.reasoning == "No match against the criteria"

    def test_total_within_bounds(self, scorer):
        prospects = [
            Prospect(name="A"),
            Prospect(name="B", title="CTO CTO Chief CEO", company="Acme Corp Acme", headline="cloud " * 50),
            Prospect(name="C", title="Intern", experience="kubernetes"),
        ]
        for prospect in prospects:
            assert 0 <= scorer.score(prospect).total <= 100


class TestRanking:
    def test_sorted_descending(self, scorer):
        ranked = scorer.rank([
            Prospect(name="Low", title="Analyst"),
            Prospect(name="High", title="CTO", company="Acme Corp"),
            Prospect(name="Mid", title="VP Engineering"),
        ])
        assert [r.prospect.name for r in ranked] == ["High", "Mid", "Low"]
        totals = [r.score.total for r in ranked]
        assert totals == sorted(totals, reverse=True)

    def test_custom_thresholds(self, criteria):
        scorer = ProspectScorer(criteria, hot_threshold=40, warm_threshold=20)
        score = scorer.score(Prospect(name="A", title="VP Engineering"))
        assert score.priority is ProspectPriority.HOT

    def test_to_dict(self, scorer):
        item = scorer.rank([Prospect(name="A", title="CTO")])[0]
        data = item.to_dict()
        assert data["name"] == "A"
        assert data["priority"] in ("hot", "warm", "cold")
        assert set(data["score_breakdown"]) == {
            "titleMatch", "seniority", "companyRelevance", "keywordMatch", "experienceRelevance",
        }

    def test_empty(self, scorer):
        assert scorer.rank([]) == []

    def test_location_filters_known_locations(self):
        scorer = ProspectScorer(ProspectCriteria(job_titles=["CTO"], location="austin"))
        ranked = scorer.rank([
            Prospect(name="Jane", title="CTO", location="Austin, TX"),
            Prospect(name="Raj", title="CTO", location="Berlin"),
            Prospect(name="Lee", title="CTO"),
        ])
        assert [r.prospect.name for r in ranked] == ["Jane", "Lee"]

    def test_timestamp_is_timezone_aware(self, scorer):
        assert scorer.score(Prospect(name="A")).timestamp.tzinfo is not None
