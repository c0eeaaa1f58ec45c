# Standard library imports
from contextlib import asynccontextmanager

# Third-party imports
from fastapi import FastAPI, Request
from fastapi.exceptions import (
    HTTPException as StarletteHTTPException,
    RequestValidationError,
)
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

# Local imports
from app.api.v1.routes.router import router as api_v1_router
from app.core.config import settings
from app.core.exceptions import AppError
from app.core.logging_config import get_logger
from app.core.response import error_response, validation_error_response
from app.db.deps import engine

# Initialize centralized logger
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown operations."""
    logger.info(f"Starting API in {settings.ENVIRONMENT} mode")
    yield
    # Shutdown: release pooled connections
    await engine.dispose()
    logger.info("API shut down")


# Initialize FastAPI
app = FastAPI(
    title="E-Learning API",
    description="API for the mobile e-learning application: subjects, lessons, quizzes, grading and tutoring",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Include the router with prefix
app.include_router(
    api_v1_router,
    prefix="/api/v1",
)


# Custom exception handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with logging"""
    # exc.detail might be a dict or str
    msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    # Log the error with context
    logger.warning(
        f"HTTP Exception: {exc.status_code} - {msg}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "client_ip": request.client.host if request.client else None
        }
    )

    return error_response(msg, status_code=exc.status_code)


# Pydantic validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Enhanced validation error handler with structured error details and logging"""

    # Log validation errors with context
    error_count = len(exc.errors())
    logger.warning(
        f"Validation Error: {error_count} field(s) failed validation",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": error_count,
        }
    )

    return validation_error_response(exc.errors(), status_code=422)


# Domain errors raised by services
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.info(
        f"{exc.error_code}: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return error_response(
        exc.message,
        data=exc.data,
        status_code=exc.status_code,
        error_code=exc.error_code,
    )


# Storage faults that escaped a service
@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        f"Storage error on {request.method} {request.url.path}: {exc}",
        extra={"path": request.url.path, "method": request.method}
    )
    return error_response(
        "The service is temporarily unavailable. Please try again.",
        status_code=503,
        error_code="STORAGE_UNAVAILABLE",
    )


# Add CORS middleware
logger.info(f"Configuring CORS middleware with origins: {settings.ALLOWED_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS,
)
logger.info("CORS middleware configured successfully")


# Run the app
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
