"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.core.middleware import setup_middleware
from qrstudio.core.rate_limiter import limiter
from qrstudio.core.exceptions import QRStudioError
from qrstudio.db.session import get_db
from qrstudio.services.cache_service import cache_service

from qrstudio.api.auth import router as auth_router
from qrstudio.api.users import router as users_router
from qrstudio.api.roles import router as roles_router
from qrstudio.api.qr_codes import router as qr_codes_router
from qrstudio.api.analytics import router as analytics_router
from qrstudio.api.bulk import router as bulk_router
from qrstudio.api.settings import router as settings_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("qrstudio")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("🚀 Starting %s API", settings.APP_NAME)

    if not cache_service.enabled:
        logger.info("ℹ️  Redis caching disabled (REDIS_URL is empty)")
    elif cache_service.health_check():
        logger.info("✅ Redis connected")
    else:
        logger.warning("⚠️  Redis not available, serving uncached")

    yield

    logger.info("🔻 Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="QR Studio API",
    description="Create, customize and manage QR codes",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Every service error carries its own HTTP status
@app.exception_handler(QRStudioError)
async def qrstudio_exception_handler(request: Request, exc: QRStudioError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(qr_codes_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(bulk_router, prefix="/api")
app.include_router(settings_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    """Health check — database and Redis."""
    db_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check: database unreachable: %s", e)
        db_ok = False

    return {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "error",
        "redis": "ok" if cache_service.health_check() else ("disabled" if not cache_service.enabled else "error"),
    }
