"""Engine service object wiring indexing, retrieval, answering and history."""
import time
from typing import Optional

from docuquery.exceptions import InvalidQueryError
from docuquery.models.document import QueryResult
from docuquery.services.chunker import TextChunker
from docuquery.services.content_extractor import ContentExtractor
from docuquery.services.document_service import DocumentService
from docuquery.services.embedding_service import EmbeddingProvider, create_embedding_provider
from docuquery.services.history_service import QueryHistoryService
from docuquery.services.indexing_service import IndexingService
from docuquery.services.llm_service import LLMService
from docuquery.services.persistence import KeyValueStore, create_key_value_store
from docuquery.services.retrieval_service import RetrievalService
from docuquery.services.vector_store import VectorStore
from docuquery.utils.logger import logger
from docuquery.utils.metrics import QUERIES, QUERY_LATENCY
from docuquery.utils.tracer import tracer
from docuquery.validators import DocumentValidator


class DocumentQAAgent:
    """Unified entry point for document management and question answering."""

    def __init__(
        self,
        documents: DocumentService,
        retrieval: RetrievalService,
        llm_service: LLMService,
        history: QueryHistoryService,
        embedding_provider: EmbeddingProvider,
        persistence: KeyValueStore,
        top_k: int = 5,
    ):
        """
        Initialize document Q&A agent.

        Args:
            documents: Document lifecycle manager
            retrieval: Retriever over the shared vector store
            llm_service: Answer synthesizer
            history: Query history
            embedding_provider: Provider shared by indexing and retrieval
            persistence: Key-value store backing documents, vectors and history
            top_k: Number of chunks to retrieve per question
        """
        self.documents = documents
        self.retrieval = retrieval
        self.llm_service = llm_service
        self.history = history
        self.embedding_provider = embedding_provider
        self.persistence = persistence
        self.top_k = top_k

    async def load(self) -> None:
        """Restore documents, vectors and history from persistence."""
        await self.retrieval.vector_store.load()
        await self.documents.load()
        await self.history.load()

    async def ask(self, question: str, api_key: Optional[str] = None) -> QueryResult:
        """
        Answer a question using the indexed documents.

        Args:
            question: User's question
            api_key: Optional credential used for answer generation on this call only

        Returns:
            QueryResult with answer, sources, confidence and the history record id

        Raises:
            InvalidQueryError: If the question is empty
        """
        start_time = time.time()

        question = (question or "").strip()
        if not question:
            raise InvalidQueryError("Query is required")

        with tracer.start_as_current_span("ask") as span:
            span.set_attribute("top_k", self.top_k)
            sources = await self.retrieval.search(question, top_k=self.top_k)
            answer = await self.llm_service.generate_answer(question, sources, api_key=api_key)
            confidence = sources[0].relevance_score if sources else 0.0
            span.set_attribute("source_count", len(sources))
            span.set_attribute("confidence", confidence)

        processing_time = (time.time() - start_time) * 1000
        record = await self.history.record(question, answer, sources)

        QUERIES.inc()
        QUERY_LATENCY.observe(processing_time / 1000)
        logger.info(
            "Query answered",
            extra={
                "response_time_ms": processing_time,
                "answer_length": len(answer),
                "source_count": len(sources),
            },
        )

        return QueryResult(
            answer=answer,
            sources=sources,
            confidence=confidence,
            processing_time=processing_time,
            record_id=record.id,
        )

    def indexed_count(self) -> int:
        """Number of distinct documents with chunks in the vector store."""
        return self.retrieval.vector_store.count_distinct_documents()

    async def close(self):
        """Close agent resources."""
        await self.llm_service.close()
        await self.embedding_provider.close()
        await self.persistence.close()


def build_agent(settings, persistence: Optional[KeyValueStore] = None) -> DocumentQAAgent:
    """
    Build the agent and its collaborators from settings.

    Args:
        settings: Application settings
        persistence: Optional key-value store, overriding ``settings.storage_backend``

    Returns:
        A DocumentQAAgent; call ``load()`` before use
    """
    persistence = persistence or create_key_value_store(settings)
    embedding_provider = create_embedding_provider(settings)
    vector_store = VectorStore(persistence)

    indexing = IndexingService(
        chunker=TextChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap),
        embedding_provider=embedding_provider,
        vector_store=vector_store,
    )
    documents = DocumentService(
        indexing_service=indexing,
        persistence=persistence,
        extractor=ContentExtractor(),
        validator=DocumentValidator.from_settings(settings),
    )

    logger.info(
        f"Agent initialized (storage={settings.storage_backend}, top_k={settings.top_k}, "
        f"chunk_size={settings.chunk_size}, chunk_overlap={settings.chunk_overlap})"
    )

    return DocumentQAAgent(
        documents=documents,
        retrieval=RetrievalService(embedding_provider, vector_store, top_k=settings.top_k),
        llm_service=LLMService.from_settings(settings),
        history=QueryHistoryService(persistence),
        embedding_provider=embedding_provider,
        persistence=persistence,
        top_k=settings.top_k,
    )
