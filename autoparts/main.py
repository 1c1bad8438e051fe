import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from autoparts.core.config import settings
from autoparts.core.database import engine
from autoparts.core.exceptions import BaseAppException, app_exception_handler
from autoparts.core.logging_config import setup_logging
from autoparts.core.redis import redis_client
from autoparts.middleware.logging import LoggingMiddleware
from autoparts.api.v1.api import api_router
from autoparts.api.v1.endpoints.seo import seo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting Autoparts catalog API ({settings.ENVIRONMENT})")
    yield
    await redis_client.disconnect()
    await engine.dispose()
    logger.info("Autoparts catalog API stopped")


app_config = {
    "title": "Autoparts Catalog API",
    "description": "Catalog categories and SEO assets for the auto parts shop",
    "version": "1.0.0",
    "docs_url": "/api/docs",
    "openapi_url": "/api/openapi.json",
}

app = FastAPI(lifespan=lifespan, **app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS,
)
app.add_middleware(LoggingMiddleware)

app.add_exception_handler(BaseAppException, app_exception_handler)

# Include routers
app.include_router(api_router, prefix="/api/v1")
app.include_router(seo.public_router, tags=["SEO"])

@app.get("/")
async def root():
    return {
        "message": "Autoparts catalog API",
        "status": "active",
        "version": app_config["version"],
        "docs": app_config["docs_url"],
    }

@app.get("/health")
async def health_check():
    components = {}
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        components["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check: database unavailable: {e}")
        components["database"] = "unavailable"
    try:
        await redis_client.ping()
        components["redis"] = "connected"
    except Exception as e:
        logger.error(f"Health check: redis unavailable: {e}")
        components["redis"] = "unavailable"

    healthy = all(state == "connected" for state in components.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": components,
    }
