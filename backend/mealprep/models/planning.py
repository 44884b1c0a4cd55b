"""Meal plan assembly models."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .customers import CustomerContext
from .recipes import Recipe
from .recommendations import MealRecommendation, MealType, NutritionalSummary


class PlanState(str, Enum):
    """Plan assembly states."""

    NOT_STARTED = "not_started"
    PER_SLOT = "per_slot"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class ExclusionSet:
    """Recipe ids to avoid: persisted recent history plus in-run picks.

    In-run picks remember which dates they were chosen for so a caller can
    fall back to "not already served today" once every candidate is used.
    """

    def __init__(self, recipe_ids: Iterable[str] = ()):
        self._persisted: set[str] = set(recipe_ids)
        self._picked: dict[str, set[date]] = {}

    @classmethod
    def from_ids(cls, recipe_ids: Iterable[str] | ExclusionSet | None) -> ExclusionSet:
        if isinstance(recipe_ids, ExclusionSet):
            return recipe_ids
        return cls(recipe_ids or ())

    def add(self, recipe_id: str, on: date) -> None:
        self._picked.setdefault(recipe_id, set()).add(on)

    def update(self, recommendations: Iterable[MealRecommendation]) -> None:
        for rec in recommendations:
            self.add(rec.recipe.id, rec.slot.date)

    def same_day(self, on: date) -> set[str]:
        """Ids picked in this run for the given date."""
        return {rid for rid, dates in self._picked.items() if on in dates}

    @property
    def ids(self) -> set[str]:
        return self._persisted | set(self._picked)

    @property
    def persisted(self) -> set[str]:
        return set(self._persisted)

    def __contains__(self, recipe_id: object) -> bool:
        return recipe_id in self._persisted or recipe_id in self._picked

    def __len__(self) -> int:
        return len(self.ids)

    def __repr__(self) -> str:
        return f"ExclusionSet(persisted={len(self._persisted)}, picked={len(self._picked)})"


class DaySummary(BaseModel):
    """Summary for a single day in the plan."""

    date: date
    meal_count: int = 0
    recipe_names: list[str] = Field(default_factory=list)
    nutrition: NutritionalSummary = Field(default_factory=NutritionalSummary)


class PlanResult(BaseModel):
    """Result of a completed plan assembly."""

    customer_id: str
    start_date: date
    end_date: date
    meal_types: list[MealType]
    state: PlanState = PlanState.DONE

    recommendations: list[MealRecommendation] = Field(default_factory=list)
    nutritional_summary: NutritionalSummary = Field(default_factory=NutritionalSummary)
    daily_summaries: list[DaySummary] = Field(default_factory=list)

    warnings: list[str] = Field(default_factory=list)
    generation_time_ms: float = 0


class PlanRequest(BaseModel):
    """Request to generate a multi-day meal plan."""

    context: CustomerContext
    recipes: list[Recipe]
    start_date: date
    end_date: date
    meal_types: Optional[list[MealType]] = None
    count_hint: Optional[int] = Field(default=None, ge=1)


class SlotRequest(BaseModel):
    """Request to recommend recipes for a single slot."""

    context: CustomerContext
    recipes: list[Recipe]
    date: date
    meal_type: MealType
    exclusions: list[str] = Field(default_factory=list)
    count_hint: Optional[int] = Field(default=None, ge=1)
