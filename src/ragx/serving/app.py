"""FastAPI application exposing ingestion and retrieval as a REST API."""

from __future__ import annotations

import logging
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ragx import __version__
from ragx.config import settings
from ragx.errors import MissingPartitionKey, RagxError, SourceUnreachable, UnsupportedFormat
from ragx.ingestion.indexer import KnowledgeIndexer
from ragx.ingestion.pipeline import IngestionPipeline
from ragx.retrieval.retriever import KnowledgeRetriever

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ragx API",
    version=__version__,
    description="Upload documents into knowledge partitions and search them.",
)


# ── Wiring ────────────────────────────────────────────────────────────
@lru_cache(maxsize=1)
def _components() -> tuple[KnowledgeIndexer, KnowledgeRetriever]:
    from ragx.ingestion.embedder import get_embedding_function
    from ragx.retrieval.chroma_store import ChromaVectorStore

    store = ChromaVectorStore()
    embedder = get_embedding_function()
    indexer = KnowledgeIndexer(store, embedder)
    indexer.ensure_schema()
    return indexer, KnowledgeRetriever(store, embedder)


def get_pipeline() -> IngestionPipeline:
    return IngestionPipeline(_components()[0])


def get_retriever() -> KnowledgeRetriever:
    return _components()[1]


# ── Request / Response schemas ────────────────────────────────────────
class UploadIndexerReply(BaseModel):
    """Ids of the passages stored for the uploaded document."""

    doc_ids: list[str]


class RetrieveRequest(BaseModel):
    """Search a knowledge partition."""

    question: str
    knowledge_name: str | None = None
    top_k: int | None = Field(default=None, ge=1)


class RetrievedPassage(BaseModel):
    id: str
    content: str
    metadata: dict[str, Any] = {}
    score: float | None = None


class RetrieveReply(BaseModel):
    passages: list[RetrievedPassage]


# ── Errors ────────────────────────────────────────────────────────────
_STATUS_BY_ERROR: dict[type[RagxError], int] = {
    MissingPartitionKey: 400,
    UnsupportedFormat: 400,
    SourceUnreachable: 404,
}


@app.exception_handler(RagxError)
async def ragx_error_handler(request: Request, exc: RagxError) -> JSONResponse:
    status = _STATUS_BY_ERROR.get(type(exc), 502)
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "message": exc.message})


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/api/v1/indexer", response_model=UploadIndexerReply)
def upload_indexer(
    file: UploadFile = File(...),
    knowledge_name: str = Form(""),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> UploadIndexerReply:
    """Save the uploaded file and index it into *knowledge_name*."""
    if not knowledge_name:
        raise MissingPartitionKey()

    save_dir = Path(settings.upload_dir)
    save_dir.mkdir(parents=True, exist_ok=True)
    save_path = save_dir / Path(file.filename or "upload").name
    with save_path.open("wb") as dst:
        shutil.copyfileobj(file.file, dst)

    ids = pipeline.ingest(str(save_path), knowledge_name)
    return UploadIndexerReply(doc_ids=ids)


@app.post("/api/v1/retrieve", response_model=RetrieveReply)
def retrieve(
    request: RetrieveRequest,
    retriever: KnowledgeRetriever = Depends(get_retriever),
) -> RetrieveReply:
    """Return the passages most similar to the question."""
    passages = retriever.search(request.question, knowledge_name=request.knowledge_name, k=request.top_k)
    return RetrieveReply(
        passages=[
            RetrievedPassage(id=p.id, content=p.content, metadata=p.metadata, score=p.score)
            for p in passages
        ]
    )
