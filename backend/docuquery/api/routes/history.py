"""Query history endpoints."""
from fastapi import APIRouter, Depends

from docuquery.agent.agent import DocumentQAAgent
from docuquery.api.dependencies import get_agent, to_http_exception
from docuquery.api.schemas import DeleteResponse, HistoryResponse, QueryRecordResponse, RatingRequest
from docuquery.exceptions import DocumentProcessingError

router = APIRouter()


@router.get("/history", response_model=HistoryResponse)
async def list_history(agent: DocumentQAAgent = Depends(get_agent)):
    """List answered questions, newest first."""
    return HistoryResponse(
        records=[QueryRecordResponse.from_record(r) for r in agent.history.list_records()]
    )


@router.patch("/history/{record_id}", response_model=QueryRecordResponse)
async def rate_answer(
    record_id: str,
    request: RatingRequest,
    agent: DocumentQAAgent = Depends(get_agent),
):
    """Rate an answer from 1 to 5, or clear the rating with 0."""
    try:
        record = await agent.history.rate(record_id, request.rating)
    except DocumentProcessingError as e:
        raise to_http_exception(e)
    return QueryRecordResponse.from_record(record)


@router.delete("/history/{record_id}", response_model=DeleteResponse)
async def delete_history_record(record_id: str, agent: DocumentQAAgent = Depends(get_agent)):
    try:
        await agent.history.delete(record_id)
    except DocumentProcessingError as e:
        raise to_http_exception(e)
    return DeleteResponse(deleted=True)
