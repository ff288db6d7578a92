"""
Resume Vault - Main Application

FastAPI backend with:
- PostgreSQL for resume metadata, companies and keywords
- MongoDB GridFS for the PDF bytes
- PyPDF2 heuristics / DeepSeek AI for metadata extraction
- JWT bearer authentication

Run: uvicorn resume_vault.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resume_vault.api.routes import api_router
from resume_vault.core.config import get_settings
from resume_vault.core.errors import ResumeVaultError
from resume_vault.core.logging_config import setup_logging
from resume_vault.db.mongodb import init_mongo_indexes, test_mongo_connection
from resume_vault.db.postgres import init_models, test_postgres_connection

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and GridFS indexes on startup."""
    try:
        init_models()
        logger.info("metadata_tables_ready")
    except Exception as e:
        logger.error("metadata_init_failed", error=str(e))
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.error("mongo_index_init_failed", error=str(e))
    yield


async def resume_vault_error_handler(request: Request, exc: ResumeVaultError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(run_startup: bool = True) -> FastAPI:
    settings = get_settings()
    setup_logging()

    app = FastAPI(
        title="Resume Vault",
        description="""
    Stores PDF resumes with searchable metadata.

    ## Features
    - **Upload**: PDF validation, metadata extraction, GridFS storage
    - **Search**: Free text plus major / year / company / keyword filters
    - **Files**: Inline PDF streaming
    - **Management**: Owner/admin update and soft delete
    """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if run_startup else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ResumeVaultError, resume_vault_error_handler)
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["Health"])
    def health_check():
        """Detailed health check."""
        return {
            "status": "healthy",
            "metadata_store": "connected" if test_postgres_connection() else "disconnected",
            "blob_store": "connected" if test_mongo_connection() else "disconnected",
        }

    return app


app = create_app()
