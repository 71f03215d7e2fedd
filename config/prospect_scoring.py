"""
Prospect scoring configuration.
"""

from typing import Dict, List

# Point caps per factor; they sum to the maximum score of 100.
SCORING_WEIGHTS: Dict[str, int] = {
    "titleMatch": 30,
    "seniority": 25,
    "companyRelevance": 20,
    "keywordMatch": 15,
    "experienceRelevance": 10,
}

MAX_SCORE = sum(SCORING_WEIGHTS.values())

# Ordered from most to least senior; lookup order matters.
SENIORITY_TIERS: List[str] = ["C-Level", "VP", "Director", "Manager", "IC"]

SENIORITY_KEYWORDS: Dict[str, List[str]] = {
    "C-Level": ["CEO", "CTO", "CIO", "CFO", "COO", "Chief", "President"],
    "VP": ["VP", "Vice President", "SVP", "EVP"],
    "Director": ["Director", "Head of"],
    "Manager": ["Manager", "Lead", "Team Lead"],
    "IC": ["Engineer", "Developer", "Analyst", "Architect", "Specialist"],
}

SENIORITY_SCORES: Dict[str, int] = {
    "C-Level": 25,
    "VP": 20,
    "Director": 15,
    "Manager": 10,
    "IC": 5,
}

# Dropped from company names before comparing them
COMPANY_SUFFIXES = {
    "inc", "incorporated", "llc", "ltd", "limited", "corp", "corporation",
    "co", "company", "gmbh", "plc", "pvt", "sa", "ag",
}

# Ignored when splitting titles and experience text into terms
STOPWORDS = {
    "a", "an", "and", "at", "for", "in", "of", "on", "the", "to", "with", "&",
}
