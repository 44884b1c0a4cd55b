"""
Multi-day plan assembly.

Process:
1. Seed the exclusion set with one history query for the whole range
2. For each date (ascending) and meal type (declared order), recommend
3. Add every pick to the exclusion set before the next slot
4. Aggregate nutrition over the finished plan

Any slot failure fails the whole run; partial plans are attached to the
raised error, never returned as success.
"""

from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from typing import Iterator, Optional

from mealprep.models import (
    CustomerContext,
    ExclusionSet,
    MealRecommendation,
    MealSlot,
    MealType,
    PlanResult,
    PlanState,
    Recipe,
)
from mealprep.services.errors import RecommendationError
from mealprep.services.history import RecentHistoryTracker
from mealprep.services.nutrition import aggregate, aggregate_by_day
from mealprep.services.recommender import CandidateRecommender

logger = logging.getLogger(__name__)


def iter_slots(start_date: date, end_date: date, meal_types: list[MealType]) -> Iterator[MealSlot]:
    """Slots in planning order: dates ascending, then meal types."""
    current = start_date
    while current <= end_date:
        for meal_type in meal_types:
            yield MealSlot(date=current, meal_type=meal_type)
        current += timedelta(days=1)


class PlanAssembler:
    """Drives the per-slot loop for one plan. One instance per run."""

    def __init__(self, recommender: CandidateRecommender, history: RecentHistoryTracker):
        self.recommender = recommender
        self.history = history
        self.state = PlanState.NOT_STARTED
        self.current_slot: Optional[MealSlot] = None

    async def assemble(
        self,
        context: CustomerContext,
        safe_candidates: list[Recipe],
        start_date: date,
        end_date: date,
        meal_types: Optional[list[MealType]] = None,
        count_hint: int = 1,
    ) -> PlanResult:
        if self.state != PlanState.NOT_STARTED:
            raise RuntimeError(f"PlanAssembler already used (state: {self.state.value})")
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")

        ordered_types = MealType.ordered(meal_types)
        if not ordered_types:
            raise ValueError("At least one meal type is required")

        start_time = time.time()
        recommendations: list[MealRecommendation] = []

        window_start, window_end = self.history.window_for_range(start_date, end_date)
        recent = await self.history.recent_recipe_ids(context.customer_id, window_start, window_end)
        exclusions = ExclusionSet(recent)

        self.state = PlanState.PER_SLOT
        try:
            for slot in iter_slots(start_date, end_date, ordered_types):
                self.current_slot = slot
                picks = await self.recommender.recommend(
                    context, safe_candidates, exclusions, slot, count_hint
                )
                recommendations.extend(picks)
                exclusions.update(picks)

                logger.debug(f"Planned {slot}: {', '.join(p.recipe.name for p in picks)}")

            self.current_slot = None
            self.state = PlanState.AGGREGATING
            summary = aggregate(recommendations)
            daily = aggregate_by_day(recommendations)
        except RecommendationError as e:
            self.state = PlanState.FAILED
            e.partial_recommendations = list(recommendations)
            e.failed_slot = self.current_slot
            logger.error(
                f"Plan assembly failed for customer {context.customer_id} at "
                f"{self.current_slot or 'aggregation'} after {len(recommendations)} picks: {e}"
            )
            raise
        except Exception:
            self.state = PlanState.FAILED
            raise

        self.state = PlanState.DONE
        generation_time = (time.time() - start_time) * 1000

        logger.info(
            f"Assembled {len(recommendations)} recommendations for customer {context.customer_id} "
            f"({start_date} to {end_date}) in {generation_time:.1f}ms"
        )

        return PlanResult(
            customer_id=context.customer_id,
            start_date=start_date,
            end_date=end_date,
            meal_types=ordered_types,
            state=self.state,
            recommendations=recommendations,
            nutritional_summary=summary,
            daily_summaries=daily,
            warnings=list(context.missing_data_warnings),
            generation_time_ms=round(generation_time, 1),
        )
