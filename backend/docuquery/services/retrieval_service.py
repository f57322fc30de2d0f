"""Similarity search over the vector store."""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from docuquery.models.document import Chunk, DocumentSource
from docuquery.services.embedding_service import EmbeddingProvider
from docuquery.services.vector_store import VectorStore
from docuquery.utils.logger import logger
from docuquery.utils.tracer import tracer


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0 when the lengths differ or either vector has zero norm.
    """
    if len(a) != len(b):
        return 0.0

    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot_product += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot_product / (math.sqrt(norm_a) * math.sqrt(norm_b))


class RetrievalService:
    """Scores stored chunks against a query and groups the best ones by document."""

    def __init__(self, embedding_provider: EmbeddingProvider, vector_store: VectorStore, top_k: int = 5):
        """
        Initialize retrieval service.

        Args:
            embedding_provider: Provider used to embed the query
            vector_store: Store holding the chunk embeddings
            top_k: Default number of chunks to keep
        """
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.top_k = top_k

    def rank_chunks(self, query_embedding: List[float]) -> List[Tuple[Chunk, float]]:
        """Score every stored chunk, best first; ties keep insertion order."""
        scored = [
            (chunk, cosine_similarity(query_embedding, chunk.embedding))
            for chunk in self.vector_store.all()
        ]
        # sorted() is stable, also with reverse=True
        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    @staticmethod
    def group_by_document(ranked: List[Tuple[Chunk, float]]) -> List[DocumentSource]:
        """
        Merge ranked chunks into one source per document.

        Sources keep the order in which their document first appears. Later chunks
        of the same document are appended to its content and raise its score to
        the best one seen.
        """
        sources: Dict[str, DocumentSource] = {}
        for chunk, score in ranked:
            existing = sources.get(chunk.document_id)
            if existing is None:
                sources[chunk.document_id] = DocumentSource(
                    id=chunk.document_id,
                    title=chunk.metadata.title,
                    content=chunk.content,
                    relevance_score=score,
                )
            else:
                existing.content += "\n\n" + chunk.content
                existing.relevance_score = max(existing.relevance_score, score)
        return list(sources.values())

    async def search(self, query: str, top_k: Optional[int] = None) -> List[DocumentSource]:
        """
        Find the documents most relevant to a query.

        Args:
            query: User's question
            top_k: Number of chunks to consider (default: configured top_k)

        Returns:
            DocumentSource list, most relevant document first
        """
        top_k = self.top_k if top_k is None else top_k
        with tracer.start_as_current_span("search") as span:
            span.set_attribute("top_k", top_k)
            span.set_attribute("chunk_count", len(self.vector_store))
            if top_k <= 0 or len(self.vector_store) == 0:
                span.set_attribute("source_count", 0)
                return []

            query_embedding = (await self.embedding_provider.embed(query)).embedding
            top_chunks = self.rank_chunks(query_embedding)[:top_k]
            sources = self.group_by_document(top_chunks)
            span.set_attribute("source_count", len(sources))

        logger.info(
            f"Retrieved {len(top_chunks)} chunks from {len(sources)} documents",
            extra={
                "similarity_scores": [round(score, 4) for _, score in top_chunks],
                "source_count": len(sources),
            },
        )
        return sources
