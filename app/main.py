"""
Infographic Studio backend: one editable infographic document behind a JSON API.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import document, health, templates
from app.routers.document import get_producer
from app.services.document_store import document_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Polled by the editor; logging them drowns out edits
_QUIET_PATHS = ("/api/health/", "/api/document", "/")


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed = document_store.document
    logger.info("Seed document %r with %d section(s)", seed.title, len(seed.sections))

    # Editing works offline, so a missing Ollama is only a warning
    if await get_producer().check_health():
        logger.info("Ollama at %s, model %s", settings.OLLAMA_BASE_URL, settings.OLLAMA_LLM_MODEL)
    else:
        logger.warning(
            "Ollama not reachable at %s; generate and optimize will fail until it is up",
            settings.OLLAMA_BASE_URL,
        )

    logger.info("Infographic Studio listening on http://%s:%d", settings.HOST, settings.PORT)
    yield
    logger.info("Infographic Studio stopped")


app = FastAPI(
    title="Infographic Studio API",
    description=(
        "Edit, generate and render a single infographic document. "
        "Generation and copy rewrites go through a local Ollama model."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log non-polling requests and set ``X-Process-Time`` in milliseconds."""
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    if request.url.path not in _QUIET_PATHS:
        logger.info(
            "%s %s -> %d (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


app.include_router(health.router, prefix="/api/health", tags=["Health"])
app.include_router(document.router, prefix="/api/document", tags=["Document"])
app.include_router(templates.router, prefix="/api/templates", tags=["Templates"])


@app.get("/", include_in_schema=False)
async def root():
    return {
        "name": "Infographic Studio API",
        "version": "0.1.0",
        "document": "/api/document",
        "templates": "/api/templates",
        "health": "/api/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, reload=True)
