"""FastAPI application entry point."""
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic_settings import BaseSettings
from starlette.responses import Response

from docuquery import __version__
from docuquery.agent.agent import build_agent
from docuquery.api.routes import documents, history, query
from docuquery.utils.logger import logger
from docuquery.utils.tracer import initialize_tracing, shutdown_tracing


class Settings(BaseSettings):
    """Application settings."""

    # Remote AI provider (OpenAI-compatible); empty key = deterministic providers only
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    completion_model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.7
    request_timeout_seconds: float = 60.0

    # Retrieval and chunking
    top_k: int = 5
    chunk_size: int = 500  # Target chunk size in characters
    chunk_overlap: int = 50  # Overlap hint; chunk_overlap // 10 words are carried over
    embedding_dimensions: int = 1536

    # Local sentence-transformers embeddings (pip install docu-query[local])
    use_local_embeddings: bool = False
    local_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Persistence: memory, file or redis
    storage_backend: str = "file"
    storage_path: str = "./data"
    redis_url: str = "redis://localhost:6379/0"

    # Document upload limits
    max_file_size_mb: float = 10
    accepted_file_types: str = "txt,md,pdf,docx,json,csv"

    log_level: str = "INFO"

    # OpenTelemetry tracing configuration
    tracing_enabled: bool = False
    otlp_endpoint: str = ""  # OTLP endpoint URL (empty = use console exporter)

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    class Config:
        # Look for .env in both backend/ and parent directory
        env_file = (
            os.path.join(os.path.dirname(__file__), "..", "..", ".env"),
            os.path.join(os.path.dirname(__file__), "..", ".env"),
        )
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    settings: Settings = app.state.settings

    logger.info("Starting DocuQuery")

    # Initialize tracing before services
    tracer_provider = initialize_tracing(settings, service_version=__version__)

    agent = build_agent(settings)
    await agent.load()
    app.state.agent = agent
    logger.info(f"Agent ready with {agent.indexed_count()} indexed documents")

    yield

    # Shutdown
    logger.info("Shutting down DocuQuery")
    app.state.agent = None
    await agent.close()
    shutdown_tracing(tracer_provider)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors with better error messages.

    Specifically handles JSON decode errors from invalid control characters.
    """
    errors = exc.errors()

    for error in errors:
        if error.get("type") == "json_invalid":
            ctx = error.get("ctx", {})
            if "Invalid control character" in str(ctx.get("error", "")):
                return JSONResponse(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    content={
                        "detail": "Invalid JSON: Control characters detected in request body. "
                                  "Please ensure your query doesn't contain special control characters.",
                        "error": "json_parse_error",
                    },
                )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": [{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in errors]},
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (default: read from environment and .env)

    Returns:
        Configured FastAPI app; the agent is built when the app starts
    """
    app = FastAPI(
        title="DocuQuery",
        description="Document indexing and retrieval-augmented question answering",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.state.agent = None

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "DocuQuery"}

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(documents.router, prefix="/api", tags=["documents"])
    app.include_router(query.router, prefix="/api", tags=["query"])
    app.include_router(history.router, prefix="/api", tags=["history"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.api_host, port=app.state.settings.api_port)
