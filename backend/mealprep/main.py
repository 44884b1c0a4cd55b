"""
mealprep: FastAPI service for allergen-safe meal recommendations.

Run with: uvicorn mealprep.main:app --reload

Architecture:
- Callers send the customer context and recipe catalog with each request
- Recipes with incomplete nutrition or matching allergens never reach ranking
- Ranking is delegated to OpenAI or done by a local weighted scorer
- Recent plan history (Supabase) keeps recommendations varied
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mealprep.config import get_settings
from mealprep.api import health
from mealprep.api import recommendations as recommendations_api

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting mealprep backend...")
    logger.info(
        f"Scorer: {settings.scorer}, AI enabled: {settings.ai_enabled}, "
        f"Supabase: {'configured' if settings.supabase_enabled else 'not configured'}"
    )
    if settings.scorer == "delegated" and not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - recommendations will be unavailable")

    yield

    logger.info("Shutting down mealprep backend...")


app = FastAPI(
    title="mealprep",
    description="Allergen-safe meal recommendation API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - allow frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"] if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(recommendations_api.router)  # /api/recommendations


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "mealprep",
        "version": "0.1.0",
        "description": "Allergen-safe meal recommendation API",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "recommendations": "/api/recommendations",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mealprep.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
    )
