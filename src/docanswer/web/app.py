"""FastAPI application exposing upload, document management and search."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any, List

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from docanswer.config import AppConfig
from docanswer.embedding.encoder import Embedder, EmbeddingError, create_embedder
from docanswer.index.indexer import Indexer
from docanswer.index.search import EMPTY_QUERY_MESSAGE, Searcher
from docanswer.index.store import InMemoryChunkStore
from docanswer.ingestion.loaders import DocumentProcessingError
from docanswer.utils.files import is_supported

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="DocAnswer", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.config = AppConfig()
app.state.store = InMemoryChunkStore()
app.state.embedder = None


class SearchPayload(BaseModel):
    query: Any = None


class SearchResponse(BaseModel):
    answer: str
    source: str
    confidence: float
    explanation: str | None = None


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_store(request: Request) -> InMemoryChunkStore:
    return request.app.state.store


def get_embedder(request: Request) -> Embedder:
    """Return the shared embedder, creating it on first use."""
    state = request.app.state
    if state.embedder is None:
        try:
            state.embedder = create_embedder(state.config)
        except EmbeddingError as exc:
            LOGGER.error("Embedding provider unavailable: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
    return state.embedder


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    config: AppConfig = app.state.config
    LOGGER.info(
        "DocAnswer ready (backend=%s, chunk_chars=%d, overlap=%d)",
        config.embedding_backend,
        config.chunk_chars,
        config.overlap,
    )


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/search", response_model=SearchResponse, response_model_exclude_none=True)
async def search_documents(
    payload: SearchPayload,
    store: InMemoryChunkStore = Depends(get_store),
    embedder: Embedder = Depends(get_embedder),
) -> dict[str, Any]:
    query = payload.query.strip() if isinstance(payload.query, str) else ""
    if not query:
        raise HTTPException(status_code=400, detail=EMPTY_QUERY_MESSAGE)

    searcher = Searcher(embedder, store)
    try:
        answer = await asyncio.to_thread(searcher.search, query)
    except EmbeddingError as exc:
        LOGGER.error("Search failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return answer.to_dict()


def _process_upload(
    indexer: Indexer, file_name: str, content: bytes, config: AppConfig
) -> dict[str, Any]:
    size_mb = len(content) / 1024 / 1024
    if len(content) > config.max_upload_bytes:
        LOGGER.warning("File %s is too large: %.2f MB", file_name, size_mb)
        limit_mb = config.max_upload_bytes / 1024 / 1024
        return {
            "file_name": file_name,
            "error": f"File is too large ({size_mb:.2f} MB). Maximum size is {limit_mb:.0f}MB.",
        }
    if not is_supported(file_name):
        return {"file_name": file_name, "error": "Unsupported file type"}

    upload_dir = config.ensure_upload_dir()
    with tempfile.NamedTemporaryFile(
        dir=upload_dir, suffix=Path(file_name).suffix.lower(), delete=False
    ) as handle:
        handle.write(content)
        temp_path = Path(handle.name)

    try:
        chunks = indexer.index_file(temp_path, display_name=file_name, file_size=len(content))
    except (DocumentProcessingError, EmbeddingError, ValueError) as exc:
        LOGGER.error("Failed to process %s: %s", file_name, exc)
        return {"file_name": file_name, "error": str(exc)}
    finally:
        temp_path.unlink(missing_ok=True)

    LOGGER.info("Processed %s into %d chunks", file_name, chunks)
    return {"file_name": file_name, "chunks_count": chunks, "status": "success"}


@app.post("/api/upload")
async def upload_documents(
    documents: List[UploadFile] | None = File(default=None),
    config: AppConfig = Depends(get_config),
    store: InMemoryChunkStore = Depends(get_store),
    embedder: Embedder = Depends(get_embedder),
) -> dict[str, Any]:
    if not documents:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(documents) > config.max_upload_files:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files. Maximum is {config.max_upload_files} files.",
        )

    indexer = Indexer(
        embedder,
        store,
        chunk_chars=config.chunk_chars,
        overlap=config.overlap,
        max_chunks=config.max_chunks,
    )
    results: List[dict[str, Any]] = []
    for document in documents:
        file_name = Path(document.filename or "upload").name
        content = await document.read()
        LOGGER.info("Processing upload %s (%d bytes)", file_name, len(content))
        result = await asyncio.to_thread(_process_upload, indexer, file_name, content, config)
        results.append(result)

    return {"message": "Files processed", "results": results}


@app.get("/api/documents")
async def list_documents(store: InMemoryChunkStore = Depends(get_store)) -> dict[str, Any]:
    """List uploaded documents with their sizes and chunk totals."""
    summaries = store.documents()
    return {
        "documents": [summary.name for summary in summaries],
        "documents_with_size": [{"name": summary.name, "size": summary.size} for summary in summaries],
        "count": len(summaries),
        "total_chunks": len(store),
    }


# Registered before the ``{file_name}`` route so "clear" is not taken as a name.
@app.delete("/api/documents/clear")
async def clear_documents(store: InMemoryChunkStore = Depends(get_store)) -> dict[str, Any]:
    cleared = store.clear()
    LOGGER.info("Cleared %d chunks", cleared)
    return {
        "message": "All documents cleared successfully",
        "cleared": cleared,
        "remaining": len(store),
    }


@app.delete("/api/documents/{file_name}")
async def delete_document(
    file_name: str, store: InMemoryChunkStore = Depends(get_store)
) -> dict[str, Any]:
    removed = store.remove_document(file_name)
    LOGGER.info("Deleted %s (%d chunks)", file_name, removed)
    return {
        "message": f'Document "{file_name}" deleted successfully',
        "file_name": file_name,
        "chunks_removed": removed,
        "remaining": len(store),
    }
