"""
Prospect Scoring CLI.

Usage:
    python -m lead_scoring.main --file prospects.csv --titles CTO "VP Engineering"
    python -m lead_scoring.main --file prospects.json --titles CTO --keywords kubernetes cloud \
        --companies "Acme Corp" --output ranked.csv
"""

import argparse
import logging
import sys
from pathlib import Path

from config.settings import get_settings

from .prospect_loader import ProspectLoader
from .scoring_model import ProspectCriteria, ProspectScorer

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Prospect Scoring")
    parser.add_argument("--file", required=True, help="Prospect file (.csv or .json)")
    parser.add_argument("--titles", nargs="+", required=True, help="Target job titles")
    parser.add_argument("--companies", nargs="*", default=[], help="Target companies")
    parser.add_argument("--keywords", nargs="*", default=[], help="Keywords to look for")
    parser.add_argument("--location", help="Only keep prospects in this location")
    parser.add_argument("--output", help="Write ranked prospects to .csv or .json")
    parser.add_argument("--top", type=int, default=10, help="Number of prospects to print")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = get_settings()
    loader = ProspectLoader()

    try:
        prospects = loader.load(args.file)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    scorer = ProspectScorer(
        ProspectCriteria(
            job_titles=args.titles,
            companies=args.companies,
            keywords=args.keywords,
            location=args.location,
        ),
        hot_threshold=settings.prospect_threshold_hot,
        warm_threshold=settings.prospect_threshold_warm,
    )
    ranked = scorer.rank(prospects)

    for item in ranked[:args.top]:
        print(
            f"{item.score.total:>3}  {item.score.priority.value:<4}  "
            f"{item.prospect.name} - {item.prospect.title} @ {item.prospect.company}"
        )

    if args.output:
        suffix = Path(args.output).suffix.lower()
        if suffix == ".json":
            loader.export_to_json(ranked, args.output)
        else:
            loader.export_to_csv(ranked, args.output)


if __name__ == "__main__":
    main()
