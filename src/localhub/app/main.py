"""FastAPI application entry point for the LocalHub assistant API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from localhub import __version__
from localhub.app.config import get_settings
from localhub.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    settings = get_settings()
    if not settings.llm_configured:
        logger.warning("GEMINI_API_KEY not set; search and assistants run on fallbacks only")
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="LocalHub Assistant API",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware: all origins in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from localhub.app.routes.search import router as search_router
from localhub.app.routes.agents import router as agents_router

app.include_router(search_router)
app.include_router(agents_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "localhub-assistant",
        "version": __version__,
        "llm_configured": settings.llm_configured,
    }


def run() -> None:
    """Run the application with uvicorn (the localhub-api console script)."""
    uvicorn.run(
        "localhub.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
