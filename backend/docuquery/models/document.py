"""Document, chunk and query history data models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    # JavaScript-style "Z" suffix is accepted for stores written by other clients
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def make_chunk_id(document_id: str, chunk_index: int) -> str:
    """Deterministic chunk id so re-indexing overwrites and deletion can target a document."""
    return f"{document_id}-chunk-{chunk_index}"


class DocumentStatus(str, Enum):
    """Indexing status of a document."""

    PENDING = "pending"
    PROCESSING = "processing"
    INDEXED = "indexed"
    ERROR = "error"


@dataclass
class Document:
    """Represents an uploaded document and its indexing state."""

    id: str
    title: str
    content: str
    file_type: str
    file_size: int
    uploaded_at: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)
    status: DocumentStatus = DocumentStatus.PENDING
    error: Optional[str] = None
    chunk_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "uploaded_at": self.uploaded_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "status": self.status.value,
            "error": self.error,
            "chunk_count": self.chunk_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(
            id=data["id"],
            title=data["title"],
            content=data.get("content", ""),
            file_type=data.get("file_type", "unknown"),
            file_size=data.get("file_size", 0),
            uploaded_at=_parse_timestamp(data["uploaded_at"]),
            last_updated=_parse_timestamp(data["last_updated"]),
            status=DocumentStatus(data.get("status", DocumentStatus.PENDING.value)),
            error=data.get("error"),
            chunk_count=data.get("chunk_count"),
        )


@dataclass(frozen=True)
class ChunkMetadata:
    """Document-level metadata copied onto every chunk."""

    title: str
    file_type: str
    chunk_index: int
    total_chunks: int


@dataclass(frozen=True)
class Chunk:
    """Represents an embedded text chunk stored in the vector store."""

    id: str
    document_id: str
    content: str
    embedding: List[float]
    metadata: ChunkMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "content": self.content,
            "embedding": list(self.embedding),
            "metadata": {
                "title": self.metadata.title,
                "file_type": self.metadata.file_type,
                "chunk_index": self.metadata.chunk_index,
                "total_chunks": self.metadata.total_chunks,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        metadata = data["metadata"]
        return cls(
            id=data["id"],
            document_id=data["document_id"],
            content=data["content"],
            embedding=[float(x) for x in data["embedding"]],
            metadata=ChunkMetadata(
                title=metadata["title"],
                file_type=metadata["file_type"],
                chunk_index=metadata["chunk_index"],
                total_chunks=metadata["total_chunks"],
            ),
        )


@dataclass
class EmbeddingResult:
    """Vector produced for a text plus the tokens it consumed."""

    embedding: List[float]
    token_count: int


@dataclass
class DocumentSource:
    """A retrieved document with the chunk text that matched the query."""

    id: str
    title: str
    content: str
    relevance_score: float
    last_updated: datetime = field(default_factory=utc_now)


@dataclass
class QueryRecord:
    """A completed question kept in the query history."""

    id: str
    query: str
    answer: str
    timestamp: datetime
    source_documents: str
    feedback_rating: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "answer": self.answer,
            "timestamp": self.timestamp.isoformat(),
            "source_documents": self.source_documents,
            "feedback_rating": self.feedback_rating,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryRecord":
        return cls(
            id=data["id"],
            query=data["query"],
            answer=data["answer"],
            timestamp=_parse_timestamp(data["timestamp"]),
            source_documents=data.get("source_documents", ""),
            feedback_rating=data.get("feedback_rating", 0),
        )


@dataclass
class QueryResult:
    """Answer to a question together with its grounding sources."""

    answer: str
    sources: List[DocumentSource]
    confidence: float
    processing_time: float
    record_id: Optional[str] = None
