"""
Per-slot recommendation with safety re-validation.

Wraps a CandidateScorer: picks the candidate pool for the slot, calls the
scorer, and keeps only answers that name a recipe from that pool.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Iterable, Optional

from mealprep.models import (
    CustomerContext,
    ExclusionSet,
    MealRecommendation,
    MealSlot,
    Recipe,
    RecommendationCandidate,
)
from mealprep.services.errors import (
    CollaboratorUnavailableError,
    NoSafeRecipesError,
    NoUsableCandidatesError,
    RecommendationError,
)
from mealprep.services.scoring import CandidateScorer

logger = logging.getLogger(__name__)


def candidate_pool(safe_candidates: list[Recipe], exclusions: ExclusionSet, on: date) -> list[Recipe]:
    """Recipes offered for a slot on the given date.

    Prefers recipes outside the exclusion set. Once every safe recipe is
    excluded, falls back to those not already picked for the same date, and
    finally to every safe recipe.
    """
    fresh = [r for r in safe_candidates if r.id not in exclusions]
    if fresh:
        return fresh

    used_today = exclusions.same_day(on)
    not_today = [r for r in safe_candidates if r.id not in used_today]
    if not_today:
        logger.warning(
            f"All {len(safe_candidates)} safe recipes were served recently; "
            f"allowing repeats from other days for {on}"
        )
        return not_today

    logger.warning(f"All {len(safe_candidates)} safe recipes already used on {on}; allowing same-day repeats")
    return list(safe_candidates)


class CandidateRecommender:
    """Boundary to the ranking collaborator for one slot at a time."""

    def __init__(
        self,
        scorer: CandidateScorer,
        ai_enabled: bool = True,
        call_timeout: Optional[float] = None,
    ):
        self.scorer = scorer
        self.ai_enabled = ai_enabled
        self.call_timeout = call_timeout

    async def ensure_available(self) -> None:
        """Raise CollaboratorUnavailableError unless the scorer can be used."""
        if not self.ai_enabled:
            raise CollaboratorUnavailableError("AI recommendation feature is disabled")
        if not await self.scorer.is_available():
            raise CollaboratorUnavailableError(f"Ranking service ({self.scorer.name}) is unavailable")

    async def recommend(
        self,
        context: CustomerContext,
        safe_candidates: list[Recipe],
        exclusions: ExclusionSet | Iterable[str] | None,
        slot: MealSlot,
        count_hint: int = 1,
    ) -> list[MealRecommendation]:
        """Recommend up to count_hint recipes for a slot.

        Raises:
            NoSafeRecipesError: safe_candidates is empty.
            CollaboratorUnavailableError: disabled, unhealthy, timed out or errored.
            NoUsableCandidatesError: nothing survived re-validation.
        """
        if not safe_candidates:
            raise NoSafeRecipesError(f"No safe recipes to recommend for {slot}")
        if count_hint < 1:
            raise ValueError("count_hint must be at least 1")

        await self.ensure_available()

        exclusion_set = ExclusionSet.from_ids(exclusions)
        pool = candidate_pool(safe_candidates, exclusion_set, slot.date)
        pool_by_id = {r.id: r for r in pool}
        avoided = {r.id for r in safe_candidates} - set(pool_by_id)

        try:
            call = self.scorer.score(context, safe_candidates, avoided, slot, count_hint)
            if self.call_timeout:
                ranked = await asyncio.wait_for(call, timeout=self.call_timeout)
            else:
                ranked = await call
        except RecommendationError:
            raise
        except asyncio.TimeoutError as e:
            raise CollaboratorUnavailableError(f"Ranking timed out for {slot}") from e
        except Exception as e:
            logger.error(f"Ranking failed for customer {context.customer_id}, {slot}: {e}")
            raise CollaboratorUnavailableError(f"AI recommendation failed: {e}") from e

        accepted: list[RecommendationCandidate] = []
        seen: set[str] = set()
        for item in ranked:
            recipe = pool_by_id.get(item.recipe_id)
            if recipe is None:
                logger.debug(f"Dropping unrecognized recipe id {item.recipe_id!r} for {slot}")
                continue
            if recipe.id in seen:
                continue
            seen.add(recipe.id)
            confidence = item.confidence if math.isfinite(item.confidence) else 0.0
            accepted.append(RecommendationCandidate(
                recipe=recipe,
                confidence=min(max(confidence, 0.0), 1.0),
                rationale=item.rationale,
                matched_criteria=item.matched_criteria,
            ))
            if len(accepted) >= count_hint:
                break

        if not accepted:
            logger.error(
                f"Ranking returned no valid recommendations for customer {context.customer_id}, {slot} "
                f"({len(ranked)} returned, {len(pool)} offered)"
            )
            raise NoUsableCandidatesError(f"AI service returned no valid recommendations for {slot}")

        return [MealRecommendation.from_candidate(c, slot) for c in accepted]
