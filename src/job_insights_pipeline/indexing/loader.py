"""
Load pre-scraped job listings from JSON files.

The scraper writes one JSON array of records per query. Wrapped payloads
({"jobs": [...]}, {"documents": [...]}, {"results": [...]}) are accepted too.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from job_insights_pipeline.retrieval.document import Document

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ("jobs", "documents", "results")


def load_scraped_documents(path: Path | str) -> list[Document]:
    """
    Read a scraped-results file into Documents.

    Records that are not JSON objects are ignored. Eligibility is not
    checked here; the indexer filters placeholder bodies.

    Raises:
        FileNotFoundError: path does not exist
        ValueError: the file is not JSON or has no record list
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        for key in WRAPPER_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break

    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of job records")

    documents = [Document.from_scraped(record) for record in data if isinstance(record, dict)]
    if len(documents) != len(data):
        logger.warning("Ignored %d non-object records in %s", len(data) - len(documents), path)
    logger.info("Loaded %d records from %s", len(documents), path)
    return documents
