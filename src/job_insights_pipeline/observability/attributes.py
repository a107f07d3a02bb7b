"""
Semantic Conventions for Span Attributes

Attribute keys following OpenTelemetry GenAI conventions plus custom
namespaces for indexing and retrieval.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "gpt-4o-mini"
GEN_AI_OPERATION_NAME = "gen_ai.operation.name"  # "embeddings", "chat"

GEN_AI_USAGE_INPUT_TOKENS = "gen_ai.usage.input_tokens"
GEN_AI_USAGE_OUTPUT_TOKENS = "gen_ai.usage.output_tokens"

# Only set when TRACING_CAPTURE_CONTENT=true
GEN_AI_PROMPT = "gen_ai.prompt"
GEN_AI_COMPLETION = "gen_ai.completion"


# ---------------------------------------------------------------------------
# EMBEDDING NAMESPACE (custom)
# ---------------------------------------------------------------------------

EMBED_BATCH_INDEX = "embed.batch.index"
EMBED_BATCH_SIZE = "embed.batch.size"
EMBED_BATCH_FAILED = "embed.batch.failed"  # bool


# ---------------------------------------------------------------------------
# VECTOR STORE NAMESPACE (custom)
# ---------------------------------------------------------------------------

DB_SYSTEM = "db.system"  # "postgresql", "memory"
STORE_COLLECTION = "store.collection"
STORE_QUERY_K = "store.query.k"
STORE_RESULT_COUNT = "store.result.count"


# ---------------------------------------------------------------------------
# INDEXING / RETRIEVAL / REPORT NAMESPACE (custom)
# ---------------------------------------------------------------------------

INDEX_DOCUMENT_COUNT = "index.document_count"
INDEX_UPSERTED_COUNT = "index.upserted_count"
INDEX_SKIPPED_COUNT = "index.skipped_count"
INDEX_FAILED_BATCHES = "index.failed_batches"

RETRIEVAL_SOURCE_ID = "retrieval.source_id"
RETRIEVAL_FALLBACK_USED = "retrieval.fallback_used"  # bool
RETRIEVAL_CANDIDATE_COUNT = "retrieval.candidate_count"

REPORT_SECTIONS_EXPECTED = "report.sections.expected"
REPORT_SECTIONS_PARSED = "report.sections.parsed"
REPORT_CONTEXT_CHARS = "report.context_chars"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def index_result_attributes(
    document_count: int,
    upserted: int,
    skipped: int,
    failed_batches: int,
) -> dict:
    """Create attributes dict for an indexing span."""
    return {
        INDEX_DOCUMENT_COUNT: document_count,
        INDEX_UPSERTED_COUNT: upserted,
        INDEX_SKIPPED_COUNT: skipped,
        INDEX_FAILED_BATCHES: failed_batches,
    }


def generation_attributes(
    model: str,
    input_tokens: int | None = None,
    output_tokens: int | None = None,
) -> dict:
    """Create attributes dict for a generation span."""
    attrs = {
        GEN_AI_SYSTEM: "openai",
        GEN_AI_OPERATION_NAME: "chat",
        GEN_AI_REQUEST_MODEL: model,
    }
    if input_tokens is not None:
        attrs[GEN_AI_USAGE_INPUT_TOKENS] = input_tokens
    if output_tokens is not None:
        attrs[GEN_AI_USAGE_OUTPUT_TOKENS] = output_tokens
    return attrs
