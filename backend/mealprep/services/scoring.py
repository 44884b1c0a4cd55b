"""
Candidate scorers.

Two interchangeable ways to rank safe candidates for a slot:
- DelegatedScorer: asks an external ranking provider (OpenAI)
- WeightedRuleScorer: deterministic local score built from the same inputs

Both return raw RankedItems; the recommender re-validates them.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from mealprep.config import Settings, get_settings
from mealprep.models import CustomerContext, MealSlot, MealType, RankedItem, Recipe
from mealprep.services.allergens import resolve_allergen_ingredient_ids
from mealprep.services.nutrition import KCAL_PER_G_CARBS, KCAL_PER_G_FAT, KCAL_PER_G_PROTEIN

logger = logging.getLogger(__name__)


class RankingProvider(Protocol):
    """External ranking collaborator."""

    async def is_available(self) -> bool: ...

    async def rank(
        self,
        context: CustomerContext,
        candidates: list[Recipe],
        exclusions: set[str],
        slot: MealSlot,
        count_hint: int,
    ) -> list[RankedItem]: ...


class CandidateScorer:
    """Ranks candidate recipes for one slot."""

    name = "base"

    async def is_available(self) -> bool:
        raise NotImplementedError

    async def score(
        self,
        context: CustomerContext,
        candidates: list[Recipe],
        exclusions: set[str],
        slot: MealSlot,
        count_hint: int,
    ) -> list[RankedItem]:
        raise NotImplementedError


class DelegatedScorer(CandidateScorer):
    """Delegates ranking to an external provider."""

    name = "delegated"

    def __init__(self, provider: RankingProvider):
        self.provider = provider

    async def is_available(self) -> bool:
        return await self.provider.is_available()

    async def score(self, context, candidates, exclusions, slot, count_hint) -> list[RankedItem]:
        return await self.provider.rank(context, candidates, exclusions, slot, count_hint)


# ============================================================================
# Weighted rule scoring
# ============================================================================

# Ingredient keywords that break a strict diet
DIET_EXCLUSIONS: dict[str, tuple[str, ...]] = {
    "vegan": (
        "beef", "pork", "chicken", "turkey", "fish", "salmon", "tuna", "shrimp",
        "egg", "cheese", "milk", "honey", "butter", "yogurt", "cream",
    ),
    "vegetarian": (
        "beef", "pork", "chicken", "turkey", "fish", "salmon", "tuna", "shrimp", "bacon",
    ),
    "pescatarian": ("beef", "pork", "chicken", "turkey", "bacon"),
    "gluten-free": ("wheat", "barley", "rye", "gluten", "bread", "pasta"),
    "dairy-free": ("milk", "cheese", "butter", "yogurt", "cream"),
}

# Calorie-share limits for macro-style diets: (macro, min share, max share)
DIET_MACRO_RULES: dict[str, tuple[str, float, float]] = {
    "low-carb": ("carbs", 0.0, 0.26),
    "keto": ("carbs", 0.0, 0.10),
    "high-protein": ("protein", 0.30, 1.0),
    "low-fat": ("fat", 0.0, 0.30),
}

# Balanced plate: protein / carbs / fat calorie shares
TARGET_MACRO_SHARES = {"protein": 0.30, "carbs": 0.45, "fat": 0.25}

MEAL_CALORIE_SHARE = {
    MealType.BREAKFAST: 0.25,
    MealType.LUNCH: 0.35,
    MealType.DINNER: 0.40,
}

DEFAULT_CALORIE_GOAL = 2000
MIN_FACTOR = 0.1

FACTOR_LABELS = {
    "dietary_match": "fits dietary restrictions",
    "preference_match": "uses preferred ingredients",
    "nutrition_balance": "balanced macros",
    "variety_bonus": "adds variety",
    "calorie_alignment": "matches calorie goal",
}


def _macro_shares(recipe: Recipe) -> dict[str, float]:
    calories = recipe.calories or 0
    if calories <= 0:
        return {"protein": 0.0, "carbs": 0.0, "fat": 0.0}
    return {
        "protein": KCAL_PER_G_PROTEIN * (recipe.protein_g or 0) / calories,
        "carbs": KCAL_PER_G_CARBS * (recipe.carbs_g or 0) / calories,
        "fat": KCAL_PER_G_FAT * (recipe.fat_g or 0) / calories,
    }


class WeightedRuleScorer(CandidateScorer):
    """Deterministic local scorer.

    score = allergy x dietary x preference x nutrition x variety x calories,
    each factor in [0, 1]. Recipes scoring 0 are never returned.
    """

    name = "weighted"

    async def is_available(self) -> bool:
        return True

    async def score(self, context, candidates, exclusions, slot, count_hint) -> list[RankedItem]:
        scored: list[tuple[float, Recipe, dict[str, float]]] = []

        for recipe in candidates:
            if recipe.id in exclusions:
                continue
            factors = self.factors(context, recipe, slot)
            total = 1.0
            for value in factors.values():
                total *= value
            if total <= 0:
                logger.debug(f"Recipe {recipe.id} scored 0 for {slot}: {factors}")
                continue
            scored.append((total, recipe, factors))

        scored.sort(key=lambda s: (-s[0], s[1].name.lower(), s[1].id))

        return [
            RankedItem(
                recipe_id=recipe.id,
                confidence=round(min(total, 1.0), 4),
                rationale=self._rationale(recipe, factors),
                matched_criteria=[FACTOR_LABELS[k] for k, v in factors.items() if k in FACTOR_LABELS and v >= 0.9],
            )
            for total, recipe, factors in scored[:count_hint]
        ]

    def factors(
        self,
        context: CustomerContext,
        recipe: Recipe,
        slot: MealSlot,
    ) -> dict[str, float]:
        return {
            "allergy_safe": self._allergy_safe(context, recipe),
            "dietary_match": self._dietary_match(context, recipe),
            "preference_match": self._preference_match(context, recipe),
            "nutrition_balance": self._nutrition_balance(recipe),
            "variety_bonus": self._variety_bonus(context, recipe),
            "calorie_alignment": self._calorie_alignment(context, recipe, slot),
        }

    def _allergy_safe(self, context: CustomerContext, recipe: Recipe) -> float:
        if not context.allergies:
            return 1.0
        return 0.0 if resolve_allergen_ingredient_ids([recipe], context.allergies) else 1.0

    def _dietary_match(self, context: CustomerContext, recipe: Recipe) -> float:
        profile = context.health_profile
        if profile is None:
            return 1.0

        ingredient_names = [i.name.lower() for i in recipe.ingredients]
        shares = _macro_shares(recipe)
        factor = 1.0

        for tag in profile.restriction_tags:
            banned = DIET_EXCLUSIONS.get(tag)
            if banned and any(word in name for name in ingredient_names for word in banned):
                return 0.0

            rule = DIET_MACRO_RULES.get(tag)
            if rule:
                macro, low, high = rule
                share = shares[macro]
                if share < low:
                    factor *= max(MIN_FACTOR, 1 - (low - share) * 2)
                elif share > high:
                    factor *= max(MIN_FACTOR, 1 - (share - high) * 2)

        return factor

    def _preference_match(self, context: CustomerContext, recipe: Recipe) -> float:
        if not context.preferences:
            return 1.0

        ingredient_names = [i.name.lower() for i in recipe.ingredients]
        for pref in context.preferences:
            if pref.ingredient_id and pref.ingredient_id in recipe.ingredient_ids:
                return 1.0
            wanted = pref.name.strip().lower()
            if wanted and (wanted in recipe.name.lower() or any(wanted in n for n in ingredient_names)):
                return 1.0
        return 0.7

    def _nutrition_balance(self, recipe: Recipe) -> float:
        shares = _macro_shares(recipe)
        distance = sum(abs(shares[k] - target) for k, target in TARGET_MACRO_SHARES.items())
        return max(MIN_FACTOR, 1 - distance)

    def _variety_bonus(self, context: CustomerContext, recipe: Recipe) -> float:
        """Recipes from recent orders score lower."""
        if recipe.id in context.ordered_recipe_ids:
            return 0.85
        return 1.0

    def _calorie_alignment(self, context: CustomerContext, recipe: Recipe, slot: MealSlot) -> float:
        goal = DEFAULT_CALORIE_GOAL
        if context.health_profile and context.health_profile.calorie_goal:
            goal = context.health_profile.calorie_goal

        target = goal * MEAL_CALORIE_SHARE[slot.meal_type]
        deviation = abs((recipe.calories or 0) - target) / target
        return max(MIN_FACTOR, 1 - deviation)

    def _rationale(self, recipe: Recipe, factors: dict[str, float]) -> str:
        ranked = sorted(
            ((v, k) for k, v in factors.items() if k in FACTOR_LABELS),
            reverse=True,
        )
        best = [FACTOR_LABELS[k] for _, k in ranked[:2]]
        return f"{recipe.name}: {' and '.join(best)}."


def build_scorer(
    settings: Optional[Settings] = None,
    provider: Optional[RankingProvider] = None,
) -> CandidateScorer:
    """Select the configured scorer."""
    settings = settings or get_settings()

    if settings.scorer == "weighted":
        return WeightedRuleScorer()

    if provider is None:
        from mealprep.services.ai import OpenAIRankingProvider

        provider = OpenAIRankingProvider(settings)
    return DelegatedScorer(provider)
