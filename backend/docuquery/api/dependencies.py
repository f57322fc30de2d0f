"""Shared route dependencies and exception translation."""
from fastapi import HTTPException, Request

from docuquery.agent.agent import DocumentQAAgent
from docuquery.exceptions import (
    DocumentBusyError,
    DocumentProcessingError,
    EmbeddingError,
    ExtractionError,
    NotFoundError,
    ProviderUnavailableError,
    StorageError,
    ValidationError,
)


def get_agent(request: Request) -> DocumentQAAgent:
    """Get agent from application state."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail="Agent not initialized")
    return agent


def to_http_exception(e: DocumentProcessingError) -> HTTPException:
    """Convert document processing errors to appropriate HTTP responses."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    elif isinstance(e, DocumentBusyError):
        return HTTPException(status_code=409, detail=str(e))
    elif isinstance(e, (ValidationError, ExtractionError)):
        return HTTPException(status_code=400, detail=str(e))
    elif isinstance(e, ProviderUnavailableError):
        return HTTPException(status_code=503, detail=str(e))
    elif isinstance(e, (EmbeddingError, StorageError)):
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=500, detail=f"Document processing failed: {str(e)}")
