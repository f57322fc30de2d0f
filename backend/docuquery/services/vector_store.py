"""In-memory vector store with key-value persistence."""
import asyncio
import json
from typing import Dict, List, Optional

from docuquery.models.document import Chunk
from docuquery.services.persistence import KeyValueStore
from docuquery.utils.logger import logger

VECTORS_STORAGE_KEY = "docu-query-vectors"


class VectorStore:
    """Service for storing document chunk embeddings, keyed by chunk id."""

    def __init__(self, persistence: KeyValueStore, storage_key: str = VECTORS_STORAGE_KEY):
        """
        Initialize the vector store.

        Args:
            persistence: Key-value backend the chunk map is saved to
            storage_key: Key the serialized chunk map lives under
        """
        self.persistence = persistence
        self.storage_key = storage_key
        # Insertion ordered; retrieval ties fall back to this order
        self._chunks: Dict[str, Chunk] = {}
        self._save_lock: Optional[asyncio.Lock] = None

    def __len__(self) -> int:
        return len(self._chunks)

    def upsert(self, chunk: Chunk) -> None:
        """Insert or replace a chunk."""
        self._chunks[chunk.id] = chunk

    def get(self, chunk_id: str) -> Optional[Chunk]:
        return self._chunks.get(chunk_id)

    def delete_by_document(self, document_id: str) -> int:
        """
        Remove every chunk owned by a document.

        Args:
            document_id: Document ID to delete

        Returns:
            Number of chunks removed
        """
        keys_to_delete = [key for key, chunk in self._chunks.items() if chunk.document_id == document_id]
        for key in keys_to_delete:
            del self._chunks[key]

        if keys_to_delete:
            logger.info(
                f"Deleted {len(keys_to_delete)} chunks for document {document_id}",
                extra={"document_id": document_id, "chunk_count": len(keys_to_delete)},
            )
        return len(keys_to_delete)

    def clear(self) -> None:
        self._chunks.clear()
        logger.info("Vector store cleared")

    def all(self) -> List[Chunk]:
        """Snapshot of every stored chunk in insertion order."""
        return list(self._chunks.values())

    def chunks_for_document(self, document_id: str) -> List[Chunk]:
        return [chunk for chunk in self._chunks.values() if chunk.document_id == document_id]

    def count_distinct_documents(self) -> int:
        """Number of documents that currently have at least one chunk."""
        return len({chunk.document_id for chunk in self._chunks.values()})

    def to_json(self) -> str:
        return json.dumps({key: chunk.to_dict() for key, chunk in self._chunks.items()})

    def load_json(self, blob: str) -> None:
        data = json.loads(blob)
        self._chunks = {key: Chunk.from_dict(value) for key, value in data.items()}

    async def load(self) -> None:
        """Replace the in-memory map with the persisted one, if any."""
        blob = await self.persistence.load(self.storage_key)
        if blob:
            self.load_json(blob)
        logger.info(
            f"Vector store loaded with {len(self._chunks)} chunks "
            f"from {self.count_distinct_documents()} documents"
        )

    async def save(self) -> None:
        """Persist the chunk map; concurrent saves write in call order, each a fresh snapshot."""
        if self._save_lock is None:
            self._save_lock = asyncio.Lock()
        async with self._save_lock:
            await self.persistence.save(self.storage_key, self.to_json())
