"""
SkillSwap Backend API Server

FastAPI application for the skill-bartering marketplace: skill listings,
matching, swap requests and sessions, reviews and admin oversight.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
import time

from skillswap import config
from skillswap.api.routes import (
    admin,
    auth,
    learning_sessions,
    matching,
    messages,
    resources,
    reviews,
    skills,
    swap_requests,
    swap_sessions,
    users,
)
from skillswap.database import Database
from skillswap.exceptions import SkillSwapError, StorageFailure
from skillswap.services.scheduler import start_scheduler, stop_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Owns the persistence handle: created on startup, stored on app.state and
    disposed on shutdown. Tests may install their own handle beforehand.
    """
    # Startup
    logger.info("Starting SkillSwap API server...")

    owns_database = getattr(app.state, "db", None) is None
    if owns_database:
        app.state.db = Database()
    await app.state.db.create_all()

    if config.SCHEDULER_ENABLED:
        start_scheduler(app.state.db)
        logger.info("Background scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down SkillSwap API server...")
    if config.SCHEDULER_ENABLED:
        stop_scheduler()
        logger.info("Background scheduler stopped")
    if owns_database:
        await app.state.db.dispose()
        app.state.db = None


# Create FastAPI application
app = FastAPI(
    title="SkillSwap API",
    description="Skill-bartering marketplace",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration_ms = (time.time() - start_time) * 1000

    # Log request
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


# Domain error handler
@app.exception_handler(SkillSwapError)
async def domain_exception_handler(request: Request, exc: SkillSwapError):
    """Map domain errors to their HTTP status with a stable error code"""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


# Persistence error handler
@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    """Unanticipated database failures surface as a generic storage error"""
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}", exc_info=True)
    error = StorageFailure()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal server error occurred",
                "details": str(exc) if app.debug else None
            }
        }
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError):
    """Pydantic error entries without the raw input/ctx objects (not always JSON-serializable)"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns server status and version information.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "service": "skillswap-api"
    }


# Include routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(users.upload_router)
app.include_router(skills.router)
app.include_router(matching.router)
app.include_router(swap_requests.router)
app.include_router(swap_sessions.router)
app.include_router(learning_sessions.router)
app.include_router(resources.router)
app.include_router(messages.router)
app.include_router(reviews.router)
app.include_router(admin.router)

# Uploaded profile pictures
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": "SkillSwap API",
        "version": "1.0.0",
        "description": "Skill-bartering marketplace",
        "docs": "/api/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
