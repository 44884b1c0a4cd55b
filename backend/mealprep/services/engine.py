"""
Recommendation engine entry points.

Wires candidate preparation (nutrition check, allergen filter), the history
tracker, the configured scorer and the audit trail together. The AI flag,
scorer choice and defaults come from Settings passed at construction.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Iterable, Optional

from mealprep.config import Settings, get_settings
from mealprep.models import (
    CustomerContext,
    ExclusionSet,
    MealRecommendation,
    MealSlot,
    MealType,
    PlanResult,
    Recipe,
)
from mealprep.services.allergens import filter_safe
from mealprep.services.audit import AuditHandle, AuditTrail, OperationAuditor, build_auditor
from mealprep.services.errors import SafetyViolationError
from mealprep.services.history import (
    HistoryStore,
    InMemoryHistoryStore,
    RecentHistoryTracker,
    SupabaseHistoryStore,
)
from mealprep.services.nutrition import exclude_incomplete_nutrition
from mealprep.services.planner import PlanAssembler
from mealprep.services.recommender import CandidateRecommender
from mealprep.services.scoring import CandidateScorer, build_scorer

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class RecommendationEngine:
    """Generates allergen-safe, diversity-aware meal recommendations."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scorer: Optional[CandidateScorer] = None,
        history_store: Optional[HistoryStore] = None,
        auditor: Optional[OperationAuditor] = None,
    ):
        self.settings = settings or get_settings()
        self.scorer = scorer or build_scorer(self.settings)

        if history_store is None:
            if self.settings.supabase_enabled:
                history_store = SupabaseHistoryStore()
            else:
                logger.warning("Supabase not configured - meal history starts empty")
                history_store = InMemoryHistoryStore()

        self.history = RecentHistoryTracker(history_store, self.settings.history_lookback_days)
        self.audit = AuditTrail(auditor or build_auditor(self.settings.audit_backend))
        self.recommender = CandidateRecommender(
            self.scorer,
            ai_enabled=self.settings.ai_enabled,
            call_timeout=self.settings.openai_timeout_seconds * (self.settings.openai_max_retries + 1),
        )

    async def generate_meal_plan(
        self,
        context: CustomerContext,
        recipes: list[Recipe],
        start_date: date,
        end_date: date,
        meal_types: Optional[list[MealType]] = None,
        count_hint: Optional[int] = None,
    ) -> PlanResult:
        """Generate a plan for every (date, meal type) slot in [start_date, end_date]."""
        count = count_hint if count_hint is not None else self.settings.default_count_hint
        start = time.time()
        handle = await self.audit.start("MealPlan", context.customer_id, {
            "start_date": str(start_date),
            "end_date": str(end_date),
            "meal_types": [m.value for m in MealType.ordered(meal_types)],
            "count_hint": count,
            "scorer": self.scorer.name,
        })

        try:
            safe = await self._prepare_candidates(context, recipes, handle)
            assembler = PlanAssembler(self.recommender, self.history)
            result = await assembler.assemble(context, safe, start_date, end_date, meal_types, count)
        except Exception as e:
            await self.audit.fail(handle, e, _elapsed_ms(start))
            logger.error(f"Failed to generate meal plan for customer {context.customer_id}: {e}")
            raise

        await self.audit.succeed(handle, {
            "recommendation_count": len(result.recommendations),
            "has_complete_profile": context.has_complete_profile,
            "warnings": context.missing_data_warnings,
        }, _elapsed_ms(start))

        return result

    async def generate_slot_recommendation(
        self,
        context: CustomerContext,
        recipes: list[Recipe],
        target_date: date,
        meal_type: MealType,
        exclusions: ExclusionSet | Iterable[str] | None = None,
        count_hint: Optional[int] = None,
    ) -> list[MealRecommendation]:
        """Recommend recipes for one slot.

        A plain id collection is merged with the customer's recent history;
        an ExclusionSet is taken as the caller's complete exclusion state.
        """
        count = count_hint if count_hint is not None else self.settings.default_count_hint
        slot = MealSlot(date=target_date, meal_type=meal_type)
        start = time.time()
        handle = await self.audit.start("SlotRecommendation", context.customer_id, {
            "slot": str(slot),
            "count_hint": count,
            "scorer": self.scorer.name,
        })

        try:
            safe = await self._prepare_candidates(context, recipes, handle)

            if isinstance(exclusions, ExclusionSet):
                exclusion_set = exclusions
            else:
                window_start, window_end = self.history.window_for(target_date)
                recent = await self.history.recent_recipe_ids(context.customer_id, window_start, window_end)
                exclusion_set = ExclusionSet(recent | set(exclusions or ()))

            recommendations = await self.recommender.recommend(context, safe, exclusion_set, slot, count)
        except Exception as e:
            await self.audit.fail(handle, e, _elapsed_ms(start))
            logger.error(f"Failed to recommend {slot} for customer {context.customer_id}: {e}")
            raise

        await self.audit.succeed(handle, {
            "recommendation_count": len(recommendations),
            "recipe_ids": [r.recipe.id for r in recommendations],
        }, _elapsed_ms(start))

        return recommendations

    async def _prepare_candidates(
        self,
        context: CustomerContext,
        recipes: list[Recipe],
        handle: AuditHandle,
    ) -> list[Recipe]:
        """Nutrition check then allergen filter. Raises SafetyViolationError when empty."""
        for warning in context.missing_data_warnings:
            logger.warning(f"Incomplete profile for customer {context.customer_id}: {warning}")

        if not recipes:
            raise SafetyViolationError("No recipes available for recommendations")

        usable, excluded = exclude_incomplete_nutrition(recipes)
        for recipe in excluded:
            await self.audit.note(
                handle,
                f"Excluded recipe {recipe.id} ({recipe.name}): missing nutrition {', '.join(recipe.missing_nutrition)}",
            )

        if not usable:
            raise SafetyViolationError("No recipes with complete nutrition data available")

        return filter_safe(usable, context.allergies)
