"""Unit Tests for the scraped-results loader."""

import json

import pytest

from job_insights_pipeline.indexing import load_scraped_documents


RECORDS = [
    {
        "url": "https://jobs.example/1",
        "title": "Data Engineer",
        "company_name": "Acme",
        "location": "Central, Hong Kong",
        "description": "Build pipelines.",
    },
    {"url": " https://jobs.example/2 ", "description": "Failed to fetch description"},
]


def _write(tmp_path, payload, name="jobs.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestLoadScrapedDocuments:
    """Test reading the scraper's JSON output."""

    def test_list_payload(self, tmp_path):
        docs = load_scraped_documents(_write(tmp_path, RECORDS))

        assert len(docs) == 2
        assert docs[0].id == "https://jobs.example/1"
        assert docs[0].organization == "Acme"
        assert docs[0].body == "Build pipelines."
        assert docs[1].id == "https://jobs.example/2"

    def test_placeholder_bodies_loaded_but_ineligible(self, tmp_path):
        """Filtering belongs to the indexer."""
        docs = load_scraped_documents(_write(tmp_path, RECORDS))

        assert docs[0].is_eligible()
        assert not docs[1].is_eligible()

    @pytest.mark.parametrize("key", ["jobs", "documents", "results"])
    def test_wrapped_payload(self, tmp_path, key):
        docs = load_scraped_documents(_write(tmp_path, {key: RECORDS}))

        assert len(docs) == 2

    def test_non_object_records_ignored(self, tmp_path):
        docs = load_scraped_documents(_write(tmp_path, [RECORDS[0], "junk", 3]))

        assert len(docs) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="not valid JSON"):
            load_scraped_documents(path)

    def test_no_record_list(self, tmp_path):
        with pytest.raises(ValueError):
            load_scraped_documents(_write(tmp_path, {"count": 2}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_scraped_documents(tmp_path / "missing.json")
