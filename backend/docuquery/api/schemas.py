"""Pydantic schemas for API requests and responses."""
import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docuquery.models.document import Document, DocumentSource, QueryRecord, QueryResult


class CamelModel(BaseModel):
    """Accepts both the camelCase wire names and the field names."""

    model_config = ConfigDict(populate_by_name=True)


class DocumentCreateRequest(CamelModel):
    """JSON body for creating a document from text."""

    id: Optional[str] = Field(None, description="Existing document id to re-index in place")
    title: str = Field(..., description="Document title")
    content: str = Field(..., description="Document text")
    file_type: str = Field("txt", alias="fileType", description="File type tag")


class DocumentUpdateRequest(CamelModel):
    """Request schema for replacing a document's content."""

    content: str = Field(..., description="New document text")


class DocumentDeleteRequest(CamelModel):
    """Request schema for deleting a document."""

    id: Optional[str] = Field(None, description="Document id")


class DocumentResponse(CamelModel):
    """A document and its indexing state."""

    id: str
    title: str
    content: str
    file_type: str = Field(..., alias="fileType")
    file_size: int = Field(..., alias="fileSize")
    uploaded_at: datetime = Field(..., alias="uploadedAt")
    last_updated: datetime = Field(..., alias="lastUpdated")
    status: str
    error: Optional[str] = None
    chunk_count: Optional[int] = Field(None, alias="chunkCount")

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            title=document.title,
            content=document.content,
            file_type=document.file_type,
            file_size=document.file_size,
            uploaded_at=document.uploaded_at,
            last_updated=document.last_updated,
            status=document.status.value,
            error=document.error,
            chunk_count=document.chunk_count,
        )


class DocumentListResponse(BaseModel):
    """Response schema for listing documents."""

    documents: List[DocumentResponse]


class DocumentStatsResponse(CamelModel):
    """Aggregate figures over the document set."""

    total_documents: int = Field(..., alias="totalDocuments")
    indexed_documents: int = Field(..., alias="indexedDocuments")
    total_size: int = Field(..., alias="totalSize")
    file_types: Dict[str, int] = Field(..., alias="fileTypes")
    documents_in_index: int = Field(..., alias="documentsInIndex", description="Documents with stored chunks")


class DeleteResponse(BaseModel):
    """Response schema for delete operations."""

    success: bool = True
    deleted: bool = Field(..., description="False if the id did not exist")


class ClearResponse(BaseModel):
    success: bool = True


class QueryRequest(CamelModel):
    """Request schema for asking questions."""

    query: str = Field("", description="User's question")
    api_key: Optional[str] = Field(None, alias="apiKey", description="Credential for this request only")

    @field_validator("query")
    @classmethod
    def clean_query(cls, v: str) -> str:
        """
        Remove invalid control characters from the question.

        Emptiness is checked by the agent so an empty question is a 400, not a 422.
        """
        # Keep \n, \t and \r
        return re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", v).strip()


class SourceResponse(CamelModel):
    """A document cited by an answer."""

    id: str
    title: str
    relevance_score: float = Field(..., alias="relevanceScore", description="Cosine similarity of the best chunk")

    @classmethod
    def from_source(cls, source: DocumentSource) -> "SourceResponse":
        return cls(id=source.id, title=source.title, relevance_score=source.relevance_score)


class QueryResponse(CamelModel):
    """Response schema for question answering."""

    answer: str = Field(..., description="Generated or templated answer")
    sources: List[SourceResponse] = Field(..., description="Documents the answer is grounded on")
    confidence: float = Field(..., description="Relevance of the top source, 0 when there is none")
    processing_time: float = Field(..., alias="processingTime", description="Processing time in milliseconds")
    record_id: Optional[str] = Field(None, alias="recordId", description="Query history record id")

    @classmethod
    def from_result(cls, result: QueryResult) -> "QueryResponse":
        return cls(
            answer=result.answer,
            sources=[SourceResponse.from_source(source) for source in result.sources],
            confidence=result.confidence,
            processing_time=result.processing_time,
            record_id=result.record_id,
        )


class QueryRecordResponse(CamelModel):
    """A query history entry."""

    id: str
    query: str
    answer: str
    timestamp: datetime
    source_documents: str = Field(..., alias="sourceDocuments")
    feedback_rating: int = Field(..., alias="feedbackRating", description="0 = unrated, 1-5 = rated")

    @classmethod
    def from_record(cls, record: QueryRecord) -> "QueryRecordResponse":
        return cls(
            id=record.id,
            query=record.query,
            answer=record.answer,
            timestamp=record.timestamp,
            source_documents=record.source_documents,
            feedback_rating=record.feedback_rating,
        )


class HistoryResponse(BaseModel):
    records: List[QueryRecordResponse]


class RatingRequest(BaseModel):
    """Request schema for rating an answer."""

    rating: int = Field(..., description="0 clears the rating, 1-5 rates the answer")
