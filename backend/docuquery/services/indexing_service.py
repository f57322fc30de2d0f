"""Chunk, embed and store documents in the vector store."""
import math
import time
from typing import Callable, Optional

from docuquery.exceptions import EmbeddingError, IndexingSupersededError
from docuquery.models.document import Chunk, ChunkMetadata, Document, make_chunk_id
from docuquery.services.chunker import TextChunker
from docuquery.services.embedding_service import EmbeddingProvider
from docuquery.services.vector_store import VectorStore
from docuquery.utils.logger import logger
from docuquery.utils.metrics import CHUNKS_EMBEDDED
from docuquery.utils.tracer import tracer

CurrencyCheck = Callable[[], bool]


class IndexingService:
    """Writes a document's chunks and embeddings to the vector store."""

    def __init__(self, chunker: TextChunker, embedding_provider: EmbeddingProvider, vector_store: VectorStore):
        """
        Initialize indexing service.

        Args:
            chunker: Splits document text into chunks
            embedding_provider: Embeds each chunk
            vector_store: Destination for the embedded chunks
        """
        self.chunker = chunker
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store

    @staticmethod
    def _ensure_current(document: Document, is_current: Optional[CurrencyCheck]) -> None:
        if is_current is not None and not is_current():
            raise IndexingSupersededError(document.id)

    async def index_document(self, document: Document, is_current: Optional[CurrencyCheck] = None) -> int:
        """
        Replace every chunk of a document with a freshly embedded set.

        Chunks are embedded one at a time, in chunk order. If embedding fails,
        the chunks written so far are removed again so a failed document never
        contributes to retrieval.

        ``is_current`` is asked before the old chunks are swept, after every
        embedding call and before the store is saved. Once it returns False the
        pass stops without writing anything further: whoever deleted, cleared or
        replaced the document already swept its chunks, and chunks under the same
        id may now belong to a newer pass.

        Args:
            document: Document whose content is indexed
            is_current: Optional check that the document is still the live one

        Returns:
            Number of chunks written

        Raises:
            EmbeddingError: If a chunk could not be embedded
            IndexingSupersededError: If ``is_current`` turned False during the pass
        """
        with tracer.start_as_current_span("index_document") as span:
            span.set_attribute("document_id", document.id)

            start_time = time.time()
            texts = self.chunker.split(document.content)
            total_chunks = len(texts)
            span.set_attribute("chunk_count", total_chunks)

            self._ensure_current(document, is_current)
            self.vector_store.delete_by_document(document.id)

            chunk_index = 0
            try:
                for chunk_index, text in enumerate(texts):
                    result = await self.embedding_provider.embed(text)
                    self._ensure_current(document, is_current)
                    if not all(math.isfinite(x) for x in result.embedding):
                        raise ValueError("embedding contains non-finite components")

                    self.vector_store.upsert(
                        Chunk(
                            id=make_chunk_id(document.id, chunk_index),
                            document_id=document.id,
                            content=text,
                            embedding=result.embedding,
                            metadata=ChunkMetadata(
                                title=document.title,
                                file_type=document.file_type,
                                chunk_index=chunk_index,
                                total_chunks=total_chunks,
                            ),
                        )
                    )
                    CHUNKS_EMBEDDED.inc()
            except IndexingSupersededError:
                logger.info(
                    f"Indexing of document {document.id} stopped at chunk {chunk_index + 1}/{total_chunks}: superseded",
                    extra={"document_id": document.id},
                )
                raise
            except Exception as e:
                logger.error(
                    f"Embedding failed at chunk {chunk_index + 1}/{total_chunks} of document {document.id}: {str(e)}",
                    extra={"document_id": document.id},
                )
                if is_current is None or is_current():
                    self.vector_store.delete_by_document(document.id)
                    await self.vector_store.save()
                raise EmbeddingError(f"Failed to embed document chunks: {str(e)}") from e

            self._ensure_current(document, is_current)
            await self.vector_store.save()

            logger.info(
                f"Indexed document {document.id} in {time.time() - start_time:.2f}s",
                extra={"document_id": document.id, "chunk_count": total_chunks},
            )
            return total_chunks

    async def remove_document(self, document_id: str) -> int:
        """Delete a document's chunks and persist the store."""
        removed = self.vector_store.delete_by_document(document_id)
        await self.vector_store.save()
        return removed

    async def clear_index(self) -> None:
        self.vector_store.clear()
        await self.vector_store.save()

    def indexed_count(self) -> int:
        return self.vector_store.count_distinct_documents()
