"""
FastAPI application for invoice ingestion.

Provides endpoints for:
- Uploading invoice PDFs for LLM extraction
- Reviewing, correcting and approving extracted invoices
- Inspecting extraction runs and the audit trail
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .database import init_db
from .models import HealthResponse
from .routers import invoices
from .services.ai import get_ai_service
from .services.events import get_view_notifier
from .services.exceptions import InvoiceWorkflowError
from .services.pdf_service import get_pdf_service
from .services.storage_service import StorageError, get_storage

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _log_invalidated_view(path: str) -> None:
    logger.info("View invalidated: %s", path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Invoice Ingestion Service...")
    get_pdf_service()
    get_ai_service()
    get_storage()
    notifier = get_view_notifier()
    notifier.subscribe(_log_invalidated_view)
    # Note: In production, use Alembic migrations instead of init_db()
    init_db()
    logger.info("Services initialized successfully")
    yield
    notifier.unsubscribe(_log_invalidated_view)
    logger.info("Shutting down Invoice Ingestion Service...")


# Create FastAPI application
app = FastAPI(
    title="Invoice Ingestion API",
    description="Invoice PDF extraction, review and approval",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite development server
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        message="Invoice Ingestion API is running",
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__, message="Service is healthy")


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(invoices.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(InvoiceWorkflowError)
async def invoice_workflow_error_handler(request: Request, exc: InvoiceWorkflowError):
    """Translate workflow errors to their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    """Handle file storage errors."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )
