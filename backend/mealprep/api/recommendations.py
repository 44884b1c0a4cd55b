"""
Meal recommendation API endpoints.

The caller supplies the customer context and recipe catalog; the engine
filters, ranks and assembles the plan.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from mealprep.api.deps import get_engine
from mealprep.models import MealRecommendation, PlanRequest, PlanResult, SlotRequest
from mealprep.services.engine import RecommendationEngine
from mealprep.services.errors import (
    CollaboratorUnavailableError,
    NoUsableCandidatesError,
    RecommendationError,
    SafetyViolationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


def _status_for(error: RecommendationError) -> int:
    if isinstance(error, SafetyViolationError):
        return 422
    if isinstance(error, CollaboratorUnavailableError):
        return 503
    if isinstance(error, NoUsableCandidatesError):
        return 502
    return 500


@router.post("/plan", response_model=PlanResult)
async def generate_meal_plan(
    request: PlanRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> PlanResult:
    """Generate recommendations for every meal slot in a date range.

    Fails as a whole if any slot fails; partial plans are never returned.
    """
    try:
        return await engine.generate_meal_plan(
            request.context,
            request.recipes,
            request.start_date,
            request.end_date,
            meal_types=request.meal_types,
            count_hint=request.count_hint,
        )
    except RecommendationError as e:
        logger.warning(
            f"Plan request failed for customer {request.context.customer_id}: {e.message} "
            f"({len(e.partial_recommendations)} slots completed)"
        )
        raise HTTPException(status_code=_status_for(e), detail=e.user_message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/slot", response_model=list[MealRecommendation])
async def recommend_slot(
    request: SlotRequest,
    engine: RecommendationEngine = Depends(get_engine),
) -> list[MealRecommendation]:
    """Recommend recipes for one date and meal type."""
    try:
        return await engine.generate_slot_recommendation(
            request.context,
            request.recipes,
            request.date,
            request.meal_type,
            exclusions=request.exclusions,
            count_hint=request.count_hint,
        )
    except RecommendationError as e:
        logger.warning(f"Slot request failed for customer {request.context.customer_id}: {e.message}")
        raise HTTPException(status_code=_status_for(e), detail=e.user_message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
