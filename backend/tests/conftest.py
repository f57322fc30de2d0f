"""Pytest configuration and fixtures."""
import shutil
import tempfile
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from docuquery.agent.agent import DocumentQAAgent
from docuquery.models.document import Chunk, ChunkMetadata, make_chunk_id
from docuquery.services.chunker import TextChunker
from docuquery.services.document_service import DocumentService
from docuquery.services.embedding_service import DeterministicEmbeddingProvider
from docuquery.services.history_service import QueryHistoryService
from docuquery.services.indexing_service import IndexingService
from docuquery.services.llm_service import LLMService
from docuquery.services.persistence import InMemoryKeyValueStore
from docuquery.services.retrieval_service import RetrievalService
from docuquery.services.vector_store import VectorStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def span_exporter():
    """Collect the spans opened by indexing, retrieval and the agent."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = provider.get_tracer("docu_query")
    with patch("docuquery.services.indexing_service.tracer", tracer), \
            patch("docuquery.services.retrieval_service.tracer", tracer), \
            patch("docuquery.agent.agent.tracer", tracer):
        yield exporter


@pytest.fixture
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def embedding_provider():
    """Deterministic, network-free embedding provider."""
    return DeterministicEmbeddingProvider()


@pytest.fixture
def vector_store(memory_store):
    return VectorStore(memory_store)


@pytest.fixture
def indexing_service(embedding_provider, vector_store):
    return IndexingService(TextChunker(), embedding_provider, vector_store)


@pytest.fixture
def document_service(indexing_service, memory_store):
    return DocumentService(indexing_service, memory_store)


@pytest.fixture
def history_service(memory_store):
    return QueryHistoryService(memory_store)


@pytest.fixture
def agent(document_service, embedding_provider, vector_store, history_service, memory_store):
    """Agent with deterministic providers and no remote credential."""
    return DocumentQAAgent(
        documents=document_service,
        retrieval=RetrievalService(embedding_provider, vector_store, top_k=5),
        llm_service=LLMService(),
        history=history_service,
        embedding_provider=embedding_provider,
        persistence=memory_store,
        top_k=5,
    )


def make_chunk(document_id, index, content, embedding, title=None, total_chunks=1):
    return Chunk(
        id=make_chunk_id(document_id, index),
        document_id=document_id,
        content=content,
        embedding=embedding,
        metadata=ChunkMetadata(
            title=title or f"{document_id}.txt",
            file_type="txt",
            chunk_index=index,
            total_chunks=total_chunks,
        ),
    )


@pytest.fixture
def sample_chunks():
    """Chunks of two documents with hand-picked embeddings."""
    return [
        make_chunk("doc-a", 0, "Docker deployment steps.", [1.0, 0.0, 0.0], total_chunks=2),
        make_chunk("doc-b", 0, "Configuration reference.", [0.0, 1.0, 0.0]),
        make_chunk("doc-a", 1, "Rolling restarts.", [0.8, 0.6, 0.0], total_chunks=2),
    ]


@pytest.fixture
def chunk_factory():
    """Build chunks without going through the chunker."""
    return make_chunk
