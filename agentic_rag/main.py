from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentic_rag import __version__
from agentic_rag.api.chat import router as chat_router
from agentic_rag.api.datastore import router as datastore_router
from agentic_rag.api.health import router as health_router
from agentic_rag.api.query import router as query_router
from agentic_rag.core.config import settings
from agentic_rag.core.exceptions import (
    CollectionNotFoundError,
    InputValidationError,
    ProviderFailureError,
    StoreUnavailableError,
)
from agentic_rag.utils.logging import get_logger, setup_logging

logger = get_logger("agentic_rag.main")

app = FastAPI(
    title=settings.app_name,
    description="Retrieval-augmented question answering with semantic action routing",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router, prefix="/api")        # /api/chat/ask, /ask-enhanced, ...
app.include_router(query_router, prefix="/api")       # /api/rag/query
app.include_router(datastore_router, prefix="/api")   # /api/datastore/upload, /validate, ...
app.include_router(health_router, prefix="/api")      # /api/health


# ── Domain errors → HTTP ────────────────────────────────────────────

@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(CollectionNotFoundError)
async def collection_not_found_handler(request: Request, exc: CollectionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ProviderFailureError)
async def provider_failure_handler(request: Request, exc: ProviderFailureError):
    logger.error("Provider failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Vector store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.on_event("startup")
async def on_startup():
    """
    1. Configure logging
    2. Build the action catalog and embed every action description once
    """
    setup_logging()
    logger.info("Starting %s...", settings.app_name)

    from agentic_rag.api.dependencies import get_action_catalog
    from agentic_rag.services.embedding import get_embedding_provider

    catalog = get_action_catalog()
    try:
        await catalog.warm(get_embedding_provider())
    except Exception as e:
        logger.warning("Action catalog warm-up failed: %s", e)
    if catalog.is_warm:
        logger.info("[OK] Action catalog ready")
    else:
        # Unembedded descriptions are retried on the next action request
        logger.warning("Action catalog not fully warmed; will retry on first action request")

    logger.info("[OK] %s started successfully", settings.app_name)


@app.on_event("shutdown")
async def on_shutdown():
    from agentic_rag.services.embedding import get_embedding_provider
    from agentic_rag.services.llm import get_generation_provider

    logger.info("Shutting down %s...", settings.app_name)
    await get_embedding_provider().close()
    await get_generation_provider().close()
    logger.info("[OK] Shutdown complete")
