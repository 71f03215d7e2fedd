"""Tests for prospect file loading and export."""

import csv
import json

import pytest

from lead_scoring.prospect_loader import ProspectLoader, ProspectRecord
from lead_scoring.scoring_model import Prospect, ProspectCriteria, ProspectScorer


@pytest.fixture
def loader():
    return ProspectLoader()


@pytest.fixture
def prospects_csv(tmp_path):
    path = tmp_path / "prospects.csv"
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "title", "company", "location", "headline", "experience", "linkedin_url"])
        writer.writerow(["Jane Doe", "CTO", "Acme Corp", "Austin", "Cloud leader", "", "https://linkedin.com/in/jane"])
        writer.writerow(["", "VP Sales", "Globex", "", "", "", ""])
        writer.writerow(["Raj Patel", "Staff Engineer", "Initech", "", "", "Kubernetes platform", ""])
    return path


class TestProspectRecord:
    def test_blank_optional_fields_become_none(self):
        record = ProspectRecord.model_validate({"name": " Jane ", "title": "CTO", "location": " "})
        assert record.name == "Jane"
        assert record.location is None

    def test_linkedin_alias(self):
        record = ProspectRecord.model_validate({"name": "Jane", "linkedInUrl": "https://linkedin.com/in/jane"})
        assert record.to_prospect().linkedin_url == "https://linkedin.com/in/jane"

    def test_unknown_columns_ignored(self):
        record = ProspectRecord.model_validate({"name": "Jane", "ref": "e12"})
        assert record.to_prospect() == Prospect(name="Jane")


class TestLoading:
    def test_load_csv_skips_invalid_rows(self, loader, prospects_csv):
        prospects = loader.load_from_csv(prospects_csv)
        assert [p.name for p in prospects] == ["Jane Doe", "Raj Patel"]
        assert prospects[0].experience is None
        assert prospects[1].experience == "Kubernetes platform"

    def test_load_json_with_prospects_key(self, loader, tmp_path):
        path = tmp_path / "prospects.json"
        path.write_text(json.dumps({"prospects": [
            {"name": "Jane", "title": "CTO", "company": "Acme"},
            {"title": "missing name"},
            "not an object",
        ]}))
        prospects = loader.load_from_json(path)
        assert [p.name for p in prospects] == ["Jane"]

    def test_load_json_list(self, loader, tmp_path):
        path = tmp_path / "prospects.json"
        path.write_text(json.dumps([{"name": "Jane"}, {"name": "Raj"}]))
        assert len(loader.load(path)) == 2

    def test_missing_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.load_from_csv(tmp_path / "nope.csv")

    def test_unsupported_format(self, loader, tmp_path):
        with pytest.raises(ValueError):
            loader.load(tmp_path / "prospects.xlsx")


class TestExport:
    @pytest.fixture
    def ranked(self):
        scorer = ProspectScorer(ProspectCriteria(job_titles=["CTO"], companies=["Acme"]))
        return scorer.rank([
            Prospect(name="Raj", title="Engineer"),
            Prospect(name="Jane", title="CTO", company="Acme Corp"),
        ])

    def test_export_csv(self, loader, ranked, tmp_path):
        path = loader.export_to_csv(ranked, tmp_path / "out" / "ranked.csv")

        with open(path, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))

        assert [r["name"] for r in rows] == ["Jane", "Raj"]
        assert rows[0]["score"] == "75"
        assert rows[0]["priority"] == "hot"
        assert rows[0]["seniority"] == "25"

    def test_export_json(self, loader, ranked, tmp_path):
        path = loader.export_to_json(ranked, tmp_path / "ranked.json")
        data = json.loads(path.read_text())
        assert data["prospects"][0]["name"] == "Jane"
        assert data["prospects"][0]["score_breakdown"]["titleMatch"] == 30
