"""
Datastore routes: upload, duplicate validation and collection management.

Only UTF-8 ``.txt`` files are accepted.  The collection defaults to the
normalized file name, so ``look_in_file_name`` on the chat routes finds
the same collection again.
"""

from __future__ import annotations

from os.path import splitext

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from agentic_rag.api.dependencies import get_ingestion_service, get_store
from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import CollectionNotFoundError
from agentic_rag.pipeline.ingestion import IngestionService
from agentic_rag.schemas.datastore import IngestionResult, ValidationResponse
from agentic_rag.schemas.document import Document
from agentic_rag.utils.logging import get_logger
from agentic_rag.utils.text import normalize_collection_name
from agentic_rag.vector_logic.vector_store import VectorStoreClient

logger = get_logger("agentic_rag.api.datastore")

router = APIRouter(prefix="/datastore", tags=["Datastore"])

ALLOWED_EXTENSIONS = {".txt"}


async def _read_document(file: UploadFile) -> Document:
    """Validate the upload and decode it into a Document."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Empty filename")

    ext = splitext(file.filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    raw = await file.read()
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(raw) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)}MB limit",
        )

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    return Document(source=file.filename, text=text)


@router.post("/upload", response_model=IngestionResult)
async def upload_document(
    file: UploadFile = File(...),
    collection: str | None = Form(None),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Chunk, embed and store a text document."""
    document = await _read_document(file)
    result = await service.ingest(document, collection)
    logger.info("[UPLOAD] %s → '%s' (%d chunks)", file.filename, result.collection, result.chunk_count)
    return result


@router.post("/validate", response_model=ValidationResponse)
async def validate_document(
    file: UploadFile = File(...),
    collection: str | None = Form(None),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Report which chunks of a document are already stored."""
    document = await _read_document(file)
    return await service.validate(document, collection)


@router.get("/collections")
async def list_collections(store: VectorStoreClient = Depends(get_store)):
    collections = await store.list_collections()
    return {"collections": sorted(collections), "count": len(collections)}


@router.delete("/collections/{name}")
async def delete_collection(name: str, store: VectorStoreClient = Depends(get_store)):
    collection = normalize_collection_name(name)
    try:
        await store.delete_collection(collection)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {"deleted": collection}
