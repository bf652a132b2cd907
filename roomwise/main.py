"""
FastAPI main application for Roomwise
"""
import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from roomwise import __version__
from roomwise.core.config import settings
from roomwise.core.exceptions import RoomwiseError, roomwise_exception_handler
from roomwise.core.logging import setup_logging
from roomwise.middleware.logging_middleware import RequestLoggingMiddleware
from roomwise.routers import analyses, files, projects, recommendations, rooms, usage, visualizations

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Roomwise API...")

    if settings.openai_api_key:
        logger.info("✅ OPENAI_API_KEY is set")
    else:
        logger.error("❌ OPENAI_API_KEY is NOT set - analysis and recommendations will fail")

    if settings.google_ai_api_key:
        logger.info("✅ GOOGLE_AI_API_KEY is set")
    else:
        logger.error("❌ GOOGLE_AI_API_KEY is NOT set - visualizations will fail")

    if not settings.serp_api_key:
        logger.warning("SERP_API_KEY is not set - product search will be skipped")

    sanitized = re.sub(r":\/\/[^:]*:[^@]*@", "://***:***@", settings.database_url)
    logger.info(f"Database: {sanitized}")

    yield

    logger.info("Shutting down Roomwise API...")


app = FastAPI(
    title="Roomwise API",
    description="AI room analysis, design recommendations and visualizations",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(RoomwiseError, roomwise_exception_handler)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {"status": "healthy", "timestamp": time.time(), "version": __version__}


app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
app.include_router(rooms.router, prefix="/api/rooms", tags=["rooms"])
app.include_router(analyses.router, prefix="/api/rooms", tags=["analyses"])
app.include_router(recommendations.router, prefix="/api", tags=["recommendations"])
app.include_router(visualizations.router, prefix="/api", tags=["visualizations"])
app.include_router(usage.router, prefix="/api/usage", tags=["usage"])
app.include_router(files.router, prefix="/api/files", tags=["files"])
