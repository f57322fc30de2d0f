"""Prometheus metrics for indexing, provider fallbacks and queries."""
from prometheus_client import Counter, Histogram

DOCUMENTS_INDEXED = Counter(
    "docuquery_documents_indexed_total",
    "Documents that finished an indexing pass",
    ["outcome"],
)

CHUNKS_EMBEDDED = Counter(
    "docuquery_chunks_embedded_total",
    "Chunks embedded and written to the vector store",
)

PROVIDER_FALLBACKS = Counter(
    "docuquery_provider_fallbacks_total",
    "Calls served by a deterministic fallback after the remote provider failed",
    ["kind"],
)

QUERIES = Counter(
    "docuquery_queries_total",
    "Questions answered",
)

QUERY_LATENCY = Histogram(
    "docuquery_query_latency_seconds",
    "End-to-end latency of a question",
)
