"""Document endpoints: upload, listing, update and deletion."""
import json
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import ValidationError as SchemaValidationError
from starlette.datastructures import UploadFile

from docuquery.agent.agent import DocumentQAAgent
from docuquery.api.dependencies import get_agent, to_http_exception
from docuquery.api.schemas import (
    ClearResponse,
    DeleteResponse,
    DocumentCreateRequest,
    DocumentDeleteRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentStatsResponse,
    DocumentUpdateRequest,
)
from docuquery.exceptions import DocumentNotFoundError, DocumentProcessingError
from docuquery.utils.logger import logger

router = APIRouter()


async def _upload_multipart(request: Request, agent: DocumentQAAgent):
    form = await request.form()
    file = form.get("file")
    if not isinstance(file, UploadFile):
        raise HTTPException(status_code=400, detail="File is required")

    data = await file.read()
    document_id = form.get("id") or None
    return await agent.documents.upload_file(file.filename or "", data, document_id=document_id)


async def _create_from_json(request: Request, agent: DocumentQAAgent):
    try:
        payload = DocumentCreateRequest.model_validate(await request.json())
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    except SchemaValidationError as e:
        messages = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise HTTPException(status_code=400, detail="; ".join(messages))

    return await agent.documents.create_document(
        title=payload.title,
        content=payload.content,
        file_type=payload.file_type,
        document_id=payload.id,
    )


@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def upload_document(request: Request, agent: DocumentQAAgent = Depends(get_agent)):
    """
    Upload a document as a multipart ``file`` or as JSON ``{id?, title, content, fileType?}``.

    The document is indexed before the response is sent. Indexing failures are
    reported through ``status`` and ``error`` on the returned document.

    Args:
        request: Incoming request, multipart or JSON
        agent: Document Q&A agent instance

    Returns:
        DocumentResponse for the stored document
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("multipart/form-data"):
            document = await _upload_multipart(request, agent)
        else:
            document = await _create_from_json(request, agent)
    except DocumentProcessingError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error uploading document: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process document: {str(e)}")

    return DocumentResponse.from_document(document)


@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(agent: DocumentQAAgent = Depends(get_agent)):
    """List all documents, most recently updated first."""
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(d) for d in agent.documents.get_all_documents()]
    )


@router.get("/documents/stats", response_model=DocumentStatsResponse)
async def document_stats(agent: DocumentQAAgent = Depends(get_agent)):
    stats = agent.documents.get_stats()
    return DocumentStatsResponse(documents_in_index=agent.indexed_count(), **stats)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, agent: DocumentQAAgent = Depends(get_agent)):
    document = agent.documents.get_document(document_id)
    if document is None:
        raise to_http_exception(DocumentNotFoundError(document_id))
    return DocumentResponse.from_document(document)


@router.put("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: str,
    request: DocumentUpdateRequest,
    agent: DocumentQAAgent = Depends(get_agent),
):
    """Replace a document's content and re-index it."""
    try:
        document = await agent.documents.update_document(document_id, request.content)
    except DocumentProcessingError as e:
        raise to_http_exception(e)
    return DocumentResponse.from_document(document)


@router.delete("/documents", response_model=DeleteResponse)
async def delete_document(
    request: Optional[DocumentDeleteRequest] = Body(None),
    agent: DocumentQAAgent = Depends(get_agent),
):
    """
    Delete a document and all of its chunks.

    Deleting an unknown id succeeds with ``deleted: false``.
    """
    document_id = request.id if request else None
    if not document_id:
        raise HTTPException(status_code=400, detail="Document ID required")

    try:
        await agent.documents.delete_document(document_id)
    except DocumentNotFoundError:
        logger.info(f"Delete requested for unknown document: {document_id}", extra={"document_id": document_id})
        return DeleteResponse(deleted=False)
    except DocumentProcessingError as e:
        raise to_http_exception(e)

    return DeleteResponse(deleted=True)


@router.post("/documents/clear", response_model=ClearResponse)
async def clear_documents(agent: DocumentQAAgent = Depends(get_agent)):
    """Remove every document and the whole vector store."""
    try:
        await agent.documents.clear_all()
    except DocumentProcessingError as e:
        raise to_http_exception(e)
    return ClearResponse()
