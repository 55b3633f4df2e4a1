"""
Character Dashboard Aggregation Service.

Serves composite character responses assembled from the Nexon Open API. The
dashboard UI calls a single endpoint and renders whatever sections and scoped
errors come back.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.errors import DashboardError, UpstreamError
from upstream.client import UpstreamClient
from .models import CompositeResponse, SectionKey, SkillModule
from .query import build_character_query

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize settings and query pipeline
settings = get_settings()
upstream_client = UpstreamClient(settings)
character_query = build_character_query(settings, client=upstream_client)

# FastAPI app
app = FastAPI(
    title="MapleStory Dashboard - Character Aggregator",
    description="Fan-out aggregation of MapleStory TW character data with partial-failure reporting",
    version="0.1.0"
)


def error_response(status: int, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"error": {"status": status, "message": message, "details": details}}
    )


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    """Translate typed errors into the JSON error envelope."""
    status = exc.status
    if status is None or not 400 <= status <= 599:
        status = 502 if isinstance(exc, UpstreamError) else 500
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return error_response(status, exc.message, exc.details)


@app.on_event("startup")
async def startup_event():
    """Log the effective configuration."""
    logger.info("Character aggregator starting up")
    logger.info(f"Upstream: {settings.api_base_url}")
    logger.info(f"Response cache TTL: {settings.response_cache_ttl}s")
    if not settings.nexon_open_api_key:
        logger.error("NEXON_OPEN_API_KEY is not set; every lookup will fail")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the upstream HTTP client."""
    logger.info("Character aggregator shutting down")
    await upstream_client.aclose()


@app.get("/api/character", response_model=CompositeResponse, response_model_by_alias=True)
async def get_character(
    character_name: Optional[str] = Query(None, alias="characterName", description="Exact character name"),
    date: Optional[str] = Query(None, description="Data date (YYYY-MM-DD)"),
    section: Optional[str] = Query(None, description="Fetch only this section"),
    ocid: Optional[str] = Query(None, description="Previously resolved character id"),
    module: Optional[str] = Query(None, description="Skill module (requires section=skills)"),
    skill_module: Optional[str] = Query(None, alias="skillModule", include_in_schema=False)
):
    """
    Fetch the composite response for a character.

    Returns:
        CompositeResponse with requested sections and scoped errors
    """
    try:
        return await character_query.get_composite_response(
            character_name,
            date=date,
            section=section,
            ocid=ocid,
            module=module or skill_module
        )
    except DashboardError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error fetching {character_name}: {e}")
        return error_response(500, "Failed to fetch character data.")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "character-aggregator",
        "api_key_configured": bool(settings.nexon_open_api_key),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": "MapleStory Dashboard - Character Aggregator",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "character": "/api/character"
        },
        "sections": [section.value for section in SectionKey],
        "skill_modules": [module.value for module in SkillModule],
        "cache_ttl": settings.response_cache_ttl
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "aggregator.service:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info" if settings.debug else "warning"
    )
