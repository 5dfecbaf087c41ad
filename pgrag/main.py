"""FastAPI application entrypoint and routes.

Exposes health and /rag/query endpoints, configures CORS, and (optionally)
initializes the database schema at startup. /rag/query embeds the query and
returns the k nearest stored chunks by cosine distance.
"""
import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from pgrag.config import settings
from pgrag.db import get_db, init_db
from pgrag.embedding import Embedder, get_default_embedder
from pgrag.errors import MissingCredential, ProviderError, StoreError
from pgrag.query import rag_query
from pgrag.schemas import ErrorResponse, RagQueryRequest, RagQueryResponse

logger = logging.getLogger(__name__)

app = FastAPI(title="pgrag", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)


def get_embedder() -> Embedder:
    """Embedder dependency; overridden in tests."""
    return get_default_embedder()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=code, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database schema and indexes when INIT_DB_ON_STARTUP is set."""
    if settings.INIT_DB_ON_STARTUP:
        init_db()


@app.get("/health")
def health():
    """Liveness probe endpoint.

    Returns:
        dict: {"status": "ok"} when the service is running.
    """
    return {"status": "ok"}


@app.post(
    "/rag/query",
    response_model=RagQueryResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": RagQueryRequest.model_json_schema()}},
        }
    },
)
async def query(
    request: Request,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
):
    """Return the k stored chunks closest to the (trimmed) query text.

    Any malformed body, including non-JSON input, is a 400 invalid_request.
    A k that is missing or not a positive integer means DEFAULT_TOP_K.

    Errors:
    - 400 embedding_api_key_missing: no embedding credential configured (checked first)
    - 400 invalid_request: body is not JSON or query is not a non-empty string
    - 500 query_failed: embedding or database failure (details are logged only)
    """
    t0 = time.time()
    if not embedder.has_credential():
        return _error(400, "embedding_api_key_missing", MissingCredential().message)

    try:
        req = RagQueryRequest.model_validate(await request.json())
    except (ValidationError, ValueError):
        return _error(400, "invalid_request", "Request body must include a non-empty 'query' string")

    k = req.k or settings.DEFAULT_TOP_K
    try:
        result = await run_in_threadpool(rag_query, db, req.query, k=k, embedder=embedder)
    except MissingCredential as e:
        return _error(400, "embedding_api_key_missing", e.message)
    except (ProviderError, StoreError):
        logger.exception("RAG query failed (k=%d)", k)
        return _error(500, "query_failed", "Failed to execute RAG query")

    took_ms = int((time.time() - t0) * 1000)
    logger.info("rag query k=%d chunks=%d took_ms=%d", k, len(result.chunks), took_ms)
    return RagQueryResponse(chunks=result.chunks, took_ms=took_ms)
