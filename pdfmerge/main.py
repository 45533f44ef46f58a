from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
import logging
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pdfmerge.config import get_settings
from pdfmerge.api.routes import health, merge
from pdfmerge.api.dependencies import limiter
from pdfmerge.middleware.logging_middleware import LoggingMiddleware
from pdfmerge.utils.exceptions import PDFServiceException

settings = get_settings()

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.debug
        else structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        LOG_LEVELS.get(settings.log_level.upper(), logging.INFO)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        version=settings.app_version,
        data_dir=settings.data_dir,
        upload_root=settings.upload_root,
    )
    yield
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Record PDF Merge Service

Merges the PDF files attached to form records:

- **Save mode**: merge the PDFs of several fields of a record and store the
  result in an output field
- **Download mode**: download one merged PDF, or a zip with one merged PDF per
  selected record

Filenames may be static, timestamp based or `{field}` templates resolved
against the record.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition",
        "X-Processing-Time-Ms",
        "X-Files-Count",
        "X-Request-ID",
    ],
)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(PDFServiceException)
async def pdf_service_exception_handler(
    request: Request,
    exc: PDFServiceException
):
    """Handle custom PDF service exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error("unhandled_exception", error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
        }
    )


app.include_router(
    health.router,
    tags=["Health"]
)

app.include_router(
    merge.router,
    prefix="/api/v1",
    tags=["Merge"]
)


@app.get("/", include_in_schema=False)
async def root():
    """Service summary."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pdfmerge.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
