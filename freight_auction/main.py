"""
FastAPI application entry point for the freight auction engine
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from freight_auction.api import admin, auctions, bids, notifications
from freight_auction.core.config import get_settings
from freight_auction.core.dependencies import get_cache, get_dispatcher, get_ledger, get_scheduler
from freight_auction.core.errors import AuctionEngineError
from freight_auction.core.logging_config import setup_logging
from freight_auction.core.metrics import CONTENT_TYPE_LATEST, get_metrics
from freight_auction.infrastructure.cache import AuctionDetailsCache
from freight_auction.infrastructure.database import init_db
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.infrastructure.redis_client import close_redis_client, test_redis_connection
from freight_auction.middleware.tracing import TracingMiddleware

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    # Startup
    logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}...")

    if settings.DB_CREATE_TABLES:
        init_db()

    if settings.CACHE_ENABLED:
        if test_redis_connection():
            logger.info("✅ Redis connected")
        else:
            logger.warning("⚠️  Redis not reachable; serving reads from the database")

    scheduler = get_scheduler()
    if settings.SCHEDULER_ENABLED:
        logger.info("⏰ Starting expiration scheduler...")
        await scheduler.start()

    yield

    # Shutdown
    logger.info("🛑 Shutting down...")
    await scheduler.stop()
    get_dispatcher().shutdown()
    close_redis_client()
    logger.info("✅ Cleanup complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Reverse-auction engine for freight jobs: lowest bid wins",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================
@app.exception_handler(AuctionEngineError)
async def auction_engine_error_handler(request: Request, exc: AuctionEngineError):
    """Render every engine error as {"error": kind, "message": text}"""
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are validation errors like any other"""
    errors = exc.errors()
    kind = "InvalidAmount" if any("amount" in error.get("loc", ()) for error in errors) else "InvalidFields"
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    )
    return JSONResponse(status_code=400, content={"error": kind, "message": message})


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TracingMiddleware)


# ============================================================================
# OPERATIONAL ENDPOINTS
# ============================================================================
@app.get("/health", tags=["Health"])
def health_check(
    ledger: LedgerStore = Depends(get_ledger),
    cache: Optional[AuctionDetailsCache] = Depends(get_cache),
):
    """Health check endpoint"""
    try:
        with ledger.session() as db:
            db.execute(text("SELECT 1"))
        database_status = "healthy"
    except (AuctionEngineError, SQLAlchemyError) as e:
        logger.warning(f"⚠️  Database health check failed: {e}")
        database_status = "unavailable"

    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "healthy" if test_redis_connection(cache.redis) else "unavailable"

    body = {
        "status": "healthy" if database_status == "healthy" else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": database_status,
        "cache": cache_status,
    }
    if cache is not None:
        body["cache_hit_rate"] = round(cache.get_hit_rate(), 3)
    return body


@app.get("/metrics", tags=["Health"])
def metrics():
    """Prometheus metrics"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(auctions.router, prefix="/api/v1")
app.include_router(bids.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
