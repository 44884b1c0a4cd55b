"""Recommendation Pydantic models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .recipes import Recipe


class MealType(str, Enum):
    """Meal types in a day, in declared planning order."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"

    @classmethod
    def ordered(cls, meal_types: list[MealType] | None = None) -> list[MealType]:
        """Deduplicate and sort meal types into declared order."""
        wanted = set(meal_types) if meal_types is not None else set(cls)
        return [m for m in cls if m in wanted]


class MealSlot(BaseModel):
    """One (date, meal type) unit of a plan."""

    model_config = ConfigDict(frozen=True)

    date: date
    meal_type: MealType

    def __str__(self) -> str:
        return f"{self.meal_type.value} on {self.date.isoformat()}"


class RankedItem(BaseModel):
    """Raw ranking returned by a scorer. Untrusted until re-validated."""

    recipe_id: str
    confidence: float
    rationale: str = ""
    matched_criteria: list[str] = Field(default_factory=list)


class RecommendationCandidate(BaseModel):
    """A validated (recipe, confidence, rationale) tuple."""

    recipe: Recipe
    confidence: float = Field(ge=0, le=1)
    rationale: str = ""
    matched_criteria: list[str] = Field(default_factory=list)


class NutritionalInfo(BaseModel):
    """Nutrition contributed by one recommendation."""

    model_config = ConfigDict(frozen=True)

    calories: float = 0
    protein_g: float = 0
    fat_g: float = 0
    carbs_g: float = 0

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> NutritionalInfo:
        return cls(
            calories=recipe.calories or 0,
            protein_g=recipe.protein_g or 0,
            fat_g=recipe.fat_g or 0,
            carbs_g=recipe.carbs_g or 0,
        )


class MealRecommendation(BaseModel):
    """A recipe recommended for a slot. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    recipe: Recipe
    relevance_score: float  # 0-100
    rationale: str = ""
    slot: MealSlot
    nutrition: NutritionalInfo
    matched_criteria: list[str] = Field(default_factory=list)

    @classmethod
    def from_candidate(cls, candidate: RecommendationCandidate, slot: MealSlot) -> MealRecommendation:
        return cls(
            recipe=candidate.recipe,
            relevance_score=round(candidate.confidence * 100, 2),
            rationale=candidate.rationale,
            slot=slot,
            nutrition=NutritionalInfo.from_recipe(candidate.recipe),
            matched_criteria=candidate.matched_criteria,
        )


class NutritionalSummary(BaseModel):
    """Totals and calorie-equivalent macro ratios over a set of recommendations."""

    total_calories: float = 0
    total_protein_g: float = 0
    total_fat_g: float = 0
    total_carbs_g: float = 0

    protein_ratio: float = 0
    carb_ratio: float = 0
    fat_ratio: float = 0
