"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter

from mealprep.services.healthcheck import get_health_checker

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health():
    """
    Health of the engine's collaborators.

    Checks:
    - API responsiveness
    - Ranking provider (OpenAI or local scorer)
    - Supabase database
    """
    checker = get_health_checker()
    report = await checker.run_all_checks()

    return report.to_dict()
