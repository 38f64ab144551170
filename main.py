"""
Main FastAPI Application
Entry point for the accommodation reservation backend
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime

import uvicorn
from beanie import init_beanie
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import AsyncMongoClient

from accommodation.api.deps import init_document_store
from accommodation.config import settings
from accommodation.models.audit import AuditLog
from accommodation.models.hotel import Hotel
from accommodation.models.request import Request as AccommodationRequest
from accommodation.models.user import Region, User
from accommodation.services.errors import WorkflowError

# Import routers
from accommodation.api.routes import finance, requests

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("accommodation")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    # Initialize MongoDB
    client = AsyncMongoClient(settings.MONGODB_URL)
    database = client[settings.MONGODB_DB_NAME]

    # Initialize Beanie with document models
    await init_beanie(
        database=database,
        document_models=[AccommodationRequest, Hotel, Region, User, AuditLog]
    )
    init_document_store(database, settings.GRIDFS_BUCKET)

    logger.info("Connected to MongoDB: %s", settings.MONGODB_DB_NAME)
    logger.info("Server running on %s:%s", settings.HOST, settings.PORT)

    yield

    # Shutdown
    logger.info("Shutting down")
    await client.close()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Accommodation requests, hotel reservations and purchase orders",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "detail": exc.message}
    )


# Include routers
app.include_router(requests.router, prefix="/api/requests", tags=["Requests"])
app.include_router(finance.router, prefix="/api/finance", tags=["Finance"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Accommodation Reservation API",
        "version": settings.APP_VERSION,
        "docs": "/api/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
