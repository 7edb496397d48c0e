from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zigzig.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
    register_exception_handlers,
)
from zigzig.routers import portfolios, recruiter
from zigzig.utils.logging_config import configure_for_environment, get_logger

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("ZigZig matching API starting up...")
    from zigzig.services.db import init_indexes
    await init_indexes()
    logger.info("ZigZig matching API startup completed")

    yield

    logger.info("ZigZig matching API shutting down...")


app = FastAPI(title="ZigZig Matching API", version="1.0.0", lifespan=lifespan)
register_exception_handlers(app)

# last added runs first
app.add_middleware(PerformanceMiddleware, slow_request_threshold=10.0)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(recruiter.router, prefix="/api/recruiter", tags=["recruiter"])
app.include_router(portfolios.router, prefix="/api/portfolios", tags=["portfolios"])

logger.info("ZigZig matching API initialized successfully")
