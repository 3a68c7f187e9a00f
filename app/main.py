"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import create_schema, engine
from app.errors import AppError, app_error_handler, request_validation_handler
from app.routers import health, identify

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for the FastAPI app.
    
    - On startup: configure logging, optionally create the contacts table
    - On shutdown: dispose of the database engine
    """
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting %s...", settings.APP_NAME)

    if settings.AUTO_CREATE_SCHEMA:
        await create_schema()
        logger.info("Database schema ensured")
    
    yield
    
    logger.info("Shutting down %s...", settings.APP_NAME)
    await engine.dispose()


# Create the FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Resolves customer emails and phone numbers into a single contact identity",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)


# Include routers (API endpoints)
app.include_router(health.router, tags=["Health"])
app.include_router(identify.router)


# Root endpoint
@app.get("/")
async def root():
    """Welcome message."""
    return {"message": f"Welcome to the {settings.APP_NAME}!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
