"""
FastAPI Application Entry Point
Main application with all routes and middleware
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sharegate.api.v1 import router as v1_router
from sharegate.core.config import settings
from sharegate.core.exceptions import AppException
from sharegate.core.logging import get_logger, setup_logging
from sharegate.models.common import ErrorResponse, HealthResponse

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug: {settings.DEBUG}")

    from sharegate.db.session import close_db, init_db
    from sharegate.services.container import build_services
    from sharegate.storage.client import MinioStorage
    from sharegate.storage.transform import PdfWatermarkTransform

    # Startup
    if getattr(app.state, "services", None) is None:
        session_maker = await init_db()
        storage = MinioStorage.from_settings()
        try:
            await storage.ensure_bucket()
        except AppException as e:
            # Uploads and content URLs fail until storage is reachable
            logger.error(f"Object storage unavailable at startup: {e.message}")
        app.state.services = build_services(session_maker, storage, PdfWatermarkTransform())
        logger.info("All services initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Document access control: classification, grants, share links and restricted documents",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Exception Handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(include_details=settings.DEBUG),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.build(str(exc.detail).lower().replace(" ", "_"), str(exc.detail)),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse.build(
            "validation_error",
            "Invalid request parameters",
            {"errors": jsonable_errors(exc)} if settings.DEBUG else None,
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes a generic 500"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.build("internal_error", "Internal server error"),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# Include routers
app.include_router(v1_router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


# Health check endpoint
@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    from sharegate.db.session import check_database

    database_ok = await check_database()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        services={"database": "healthy" if database_ok else "unhealthy"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sharegate.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
