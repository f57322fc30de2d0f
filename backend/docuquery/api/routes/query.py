"""Query endpoint for question answering."""
from fastapi import APIRouter, Depends, HTTPException

from docuquery.agent.agent import DocumentQAAgent
from docuquery.api.dependencies import get_agent
from docuquery.api.schemas import QueryRequest, QueryResponse
from docuquery.exceptions import InvalidQueryError
from docuquery.utils.logger import logger

router = APIRouter()


@router.post("/query", response_model=QueryResponse)
async def query_documents(
    request: QueryRequest,
    agent: DocumentQAAgent = Depends(get_agent),
):
    """
    Answer a question about the uploaded documents.

    Args:
        request: QueryRequest with the question and an optional per-request API key
        agent: Document Q&A agent instance

    Returns:
        QueryResponse with answer, cited sources, confidence and timing
    """
    try:
        result = await agent.ask(request.query, api_key=request.api_key)
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error answering query: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process query")

    return QueryResponse.from_result(result)
