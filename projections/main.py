"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from projections import models  # noqa: F401  (registers every table)
from projections.audit import routes as audit_routes
from projections.balances import routes as balance_routes
from projections.config import settings
from projections.data import routes as data_routes
from projections.database import AsyncSessionLocal, engine
from projections.errors import (
    InvalidDateRangeError,
    NotFoundError,
    RecurringRuleMissingEndDateError,
    RevisionDateOutOfRangeError,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Financial Projections API ({settings.APP_ENV})")
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


# Create FastAPI app
app = FastAPI(
    title="Financial Projections API",
    description="Daily balance projections from bank history, projected events and recurring rules",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(data_routes.router, prefix=f"{settings.API_V1_PREFIX}/data", tags=["Data"])
app.include_router(balance_routes.router, prefix=f"{settings.API_V1_PREFIX}/balances", tags=["Balances"])
app.include_router(audit_routes.router, prefix=f"{settings.API_V1_PREFIX}/activity-log", tags=["Activity Log"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(RecurringRuleMissingEndDateError)
async def missing_end_date_handler(request: Request, exc: RecurringRuleMissingEndDateError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(InvalidDateRangeError)
@app.exception_handler(RevisionDateOutOfRangeError)
async def bad_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=409, content={"detail": "Conflicts with existing data"})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Financial Projections API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint - pings the database."""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": "unreachable"})
    return {"status": "healthy", "database": "connected"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "projections.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
