"""
Indexing module - get scraped listings into the vector store.

- load_scraped_documents(): read the scraper's JSON output
- DocumentIndexer: filter, embed and upsert in sequential batches
"""

from job_insights_pipeline.indexing.indexer import DocumentIndexer
from job_insights_pipeline.indexing.loader import load_scraped_documents

__all__ = [
    "DocumentIndexer",
    "load_scraped_documents",
]
