"""
Unit tests for per-slot recommendation.
"""

import asyncio
import pytest
from datetime import date
from unittest.mock import AsyncMock

from mealprep.models import ExclusionSet, MealSlot, MealType, RankedItem
from mealprep.services.allergens import filter_safe
from mealprep.services.errors import (
    CollaboratorUnavailableError,
    NoSafeRecipesError,
    NoUsableCandidatesError,
)
from mealprep.services.recommender import CandidateRecommender, candidate_pool
from mealprep.services.scoring import DelegatedScorer

SLOT = MealSlot(date=date(2024, 6, 4), meal_type=MealType.DINNER)


@pytest.fixture
def safe(catalog):
    return filter_safe(catalog, ["Peanuts"])


class TestCandidatePool:
    """Tests for pool selection under exclusions."""

    @pytest.mark.unit
    def test_prefers_unexcluded(self, safe):
        pool = candidate_pool(safe, ExclusionSet({"r-oats"}), SLOT.date)
        assert [r.id for r in pool] == ["r-chicken", "r-tofu"]

    @pytest.mark.unit
    def test_falls_back_to_other_days(self, safe):
        """With everything excluded, recipes not used today come back."""
        exclusions = ExclusionSet({"r-tofu"})
        exclusions.add("r-oats", date(2024, 6, 3))
        exclusions.add("r-chicken", SLOT.date)

        pool = candidate_pool(safe, exclusions, SLOT.date)

        assert [r.id for r in pool] == ["r-oats", "r-tofu"]

    @pytest.mark.unit
    def test_last_resort_is_full_safe_set(self, safe):
        exclusions = ExclusionSet()
        for recipe in safe:
            exclusions.add(recipe.id, SLOT.date)

        assert candidate_pool(safe, exclusions, SLOT.date) == safe


class TestCandidateRecommender:
    """Tests for the collaborator boundary."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_top_candidate(self, context, safe, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, set(), SLOT)

        assert len(recs) == 1
        assert recs[0].recipe.id == "r-oats"
        assert recs[0].relevance_score == 95.0
        assert recs[0].slot == SLOT
        assert recs[0].nutrition.calories == 400

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_excluded_ids_passed_to_scorer(self, context, safe, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, ["r-oats", "r-tofu"], SLOT)

        assert recs[0].recipe.id == "r-chicken"
        assert provider.calls[0]["exclusions"] == {"r-oats", "r-tofu"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_count_hint(self, context, safe, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, set(), SLOT, count_hint=2)

        assert [r.recipe.id for r in recs] == ["r-oats", "r-chicken"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejects_ids_outside_safe_pool(self, context, safe, provider, peanut_recipe_ids):
        """Unsafe or unknown ids from the collaborator are dropped."""
        provider.answer = [
            RankedItem(recipe_id="r-satay", confidence=0.99),
            RankedItem(recipe_id="made-up", confidence=0.98),
            RankedItem(recipe_id="r-tofu", confidence=0.7),
        ]
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, set(), SLOT)

        assert [r.recipe.id for r in recs] == ["r-tofu"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejects_excluded_pick_when_alternatives_exist(self, context, safe, provider):
        provider.answer = [RankedItem(recipe_id="r-oats", confidence=0.9)]
        recommender = CandidateRecommender(DelegatedScorer(provider))

        with pytest.raises(NoUsableCandidatesError):
            await recommender.recommend(context, safe, {"r-oats"}, SLOT)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dedupes_and_clamps(self, context, safe, provider):
        provider.answer = [
            RankedItem(recipe_id="r-tofu", confidence=1.7),
            RankedItem(recipe_id="r-tofu", confidence=0.5),
            RankedItem(recipe_id="r-chicken", confidence=-0.2),
        ]
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, set(), SLOT, count_hint=3)

        assert [r.recipe.id for r in recs] == ["r-tofu", "r-chicken"]
        assert recs[0].relevance_score == 100.0
        assert recs[1].relevance_score == 0.0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_finite_confidence(self, context, safe, provider):
        provider.answer = [
            RankedItem(recipe_id="r-tofu", confidence=float("nan")),
            RankedItem(recipe_id="r-chicken", confidence=float("inf")),
        ]
        recommender = CandidateRecommender(DelegatedScorer(provider))

        recs = await recommender.recommend(context, safe, set(), SLOT, count_hint=2)

        assert [r.recipe.id for r in recs] == ["r-tofu", "r-chicken"]
        assert all(r.relevance_score == 0.0 for r in recs)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_answer(self, context, safe, provider):
        provider.answer = []
        recommender = CandidateRecommender(DelegatedScorer(provider))

        with pytest.raises(NoUsableCandidatesError):
            await recommender.recommend(context, safe, set(), SLOT)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_safe_set(self, context, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider))

        with pytest.raises(NoSafeRecipesError):
            await recommender.recommend(context, [], set(), SLOT)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_count_hint(self, context, safe, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider))

        with pytest.raises(ValueError):
            await recommender.recommend(context, safe, set(), SLOT, count_hint=0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_disabled(self, context, safe, provider):
        recommender = CandidateRecommender(DelegatedScorer(provider), ai_enabled=False)

        with pytest.raises(CollaboratorUnavailableError):
            await recommender.recommend(context, safe, set(), SLOT)
        assert provider.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unavailable(self, context, safe, unavailable_provider):
        recommender = CandidateRecommender(DelegatedScorer(unavailable_provider))

        with pytest.raises(CollaboratorUnavailableError):
            await recommender.recommend(context, safe, set(), SLOT)
        assert unavailable_provider.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_provider_error_is_typed(self, context, safe):
        provider = AsyncMock()
        provider.is_available.return_value = True
        provider.rank.side_effect = RuntimeError("connection reset")
        recommender = CandidateRecommender(DelegatedScorer(provider))

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await recommender.recommend(context, safe, set(), SLOT)

        assert "connection reset" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self, context, safe):
        async def slow_rank(*args):
            await asyncio.sleep(1)
            return []

        provider = AsyncMock()
        provider.is_available.return_value = True
        provider.rank.side_effect = slow_rank
        recommender = CandidateRecommender(DelegatedScorer(provider), call_timeout=0.01)

        with pytest.raises(CollaboratorUnavailableError):
            await recommender.recommend(context, safe, set(), SLOT)
