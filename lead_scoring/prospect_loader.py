"""
Prospect Loader.

Reads prospect lists from CSV or JSON and writes ranked results back out.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .scoring_model import Prospect, ScoredProspect

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "name", "title", "company", "location", "linkedin_url",
    "score", "priority", "seniority_tier",
    "titleMatch", "seniority", "companyRelevance", "keywordMatch", "experienceRelevance",
    "reasoning",
]


class ProspectRecord(BaseModel):
    """One prospect row as found in an input file."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    title: str = ""
    company: str = ""
    location: Optional[str] = None
    headline: Optional[str] = None
    experience: Optional[str] = None
    linkedin_url: Optional[str] = Field(default=None, alias="linkedInUrl")

    @field_validator("name", "title", "company", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("location", "headline", "experience", "linkedin_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_prospect(self) -> Prospect:
        return Prospect(
            name=self.name,
            title=self.title,
            company=self.company,
            location=self.location,
            headline=self.headline,
            experience=self.experience,
            linkedin_url=self.linkedin_url,
        )


class ProspectLoader:
    """
    Loads prospects for scoring and exports scored results.

    Supports:
    - CSV files with a header row
    - JSON files holding a list or an object with a "prospects" key
    """

    def load_from_csv(self, file_path: Union[str, Path]) -> List[Prospect]:
        """
        Load prospects from a CSV file.

        Expected columns:
        - name, title, company, location, headline, experience, linkedin_url

        Args:
            file_path: Path to the CSV file

        Returns:
            Valid prospects; invalid rows are logged and skipped
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))

        prospects = self._parse_rows(rows)
        logger.info(f"Loaded {len(prospects)} prospects from {file_path}")
        return prospects

    def load_from_json(self, file_path: Union[str, Path]) -> List[Prospect]:
        """
        Load prospects from a JSON file.

        Args:
            file_path: Path to the JSON file

        Returns:
            Valid prospects; invalid entries are logged and skipped
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"JSON file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        # Handle both array and object with "prospects" key
        if isinstance(data, list):
            items = data
        elif isinstance(data, dict) and "prospects" in data:
            items = data["prospects"]
        else:
            items = [data]

        prospects = self._parse_rows(items)
        logger.info(f"Loaded {len(prospects)} prospects from {file_path}")
        return prospects

    def load(self, file_path: Union[str, Path]) -> List[Prospect]:
        """Load by file extension (.csv or .json)."""
        suffix = Path(file_path).suffix.lower()
        if suffix == ".csv":
            return self.load_from_csv(file_path)
        if suffix == ".json":
            return self.load_from_json(file_path)
        raise ValueError(f"Unsupported format: {suffix}")

    def export_to_csv(self, scored: Sequence[ScoredProspect], file_path: Union[str, Path]) -> Path:
        """Write scored prospects as CSV, one row per prospect in the given order."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=EXPORT_COLUMNS)
            writer.writeheader()
            for item in scored:
                writer.writerow(self._export_row(item))

        logger.info(f"Exported {len(scored)} scored prospects to {file_path}")
        return file_path

    def export_to_json(self, scored: Sequence[ScoredProspect], file_path: Union[str, Path]) -> Path:
        """Write scored prospects as a JSON object with a "prospects" list."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            json.dump({"prospects": [s.to_dict() for s in scored]}, f, indent=2)

        logger.info(f"Exported {len(scored)} scored prospects to {file_path}")
        return file_path

    def _parse_rows(self, rows: List[Any]) -> List[Prospect]:
        prospects = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning(f"Skipping prospect entry {index}: expected an object")
                continue
            try:
                prospects.append(ProspectRecord.model_validate(row).to_prospect())
            except ValidationError as e:
                logger.warning(f"Skipping prospect entry {index}: {e.error_count()} validation errors")
                continue
        return prospects

    @staticmethod
    def _export_row(item: ScoredProspect) -> Dict[str, Any]:
        p, s = item.prospect, item.score
        row = {
            "name": p.name,
            "title": p.title,
            "company": p.company,
            "location": p.location or "",
            "linkedin_url": p.linkedin_url or "",
            "score": s.total,
            "priority": s.priority.value,
            "seniority_tier": s.seniority_tier or "",
            "reasoning": s.reasoning,
        }
        for factor in ("titleMatch", "seniority", "companyRelevance", "keywordMatch", "experienceRelevance"):
            row[factor] = s.breakdown.get(factor, 0)
        return row
