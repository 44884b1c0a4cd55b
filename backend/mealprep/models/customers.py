"""Customer profile models consumed by the recommendation engine."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_ORDER_HISTORY = 10


class HealthProfile(BaseModel):
    """Customer health profile."""

    model_config = ConfigDict(frozen=True)

    age: Optional[int] = None
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    gender: Optional[str] = None
    health_notes: Optional[str] = None

    # Free text, e.g. "vegetarian, low-carb"
    dietary_restrictions: Optional[str] = None
    calorie_goal: Optional[int] = None  # Daily kcal target

    @property
    def restriction_tags(self) -> list[str]:
        """Dietary restrictions split into lowercase tags."""
        if not self.dietary_restrictions:
            return []
        raw = self.dietary_restrictions.replace(";", ",")
        return [t.strip().lower() for t in raw.split(",") if t.strip()]


class FoodPreference(BaseModel):
    """A preferred food, optionally linked to an ingredient."""

    model_config = ConfigDict(frozen=True)

    name: str
    ingredient_id: Optional[str] = None


class OrderSummary(BaseModel):
    """A past order, reduced to what the recommender needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    order_date: date
    recipe_ids: list[str] = Field(default_factory=list)


class CustomerContext(BaseModel):
    """Read-only snapshot of a customer, built once per recommendation request."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    full_name: str = ""
    health_profile: Optional[HealthProfile] = None
    allergies: list[str] = Field(default_factory=list)
    preferences: list[FoodPreference] = Field(default_factory=list)
    order_history: list[OrderSummary] = Field(default_factory=list)

    has_complete_profile: bool = False
    missing_data_warnings: list[str] = Field(default_factory=list)

    @classmethod
    def analyze(
        cls,
        customer_id: str,
        full_name: str = "",
        health_profile: Optional[HealthProfile] = None,
        allergies: Optional[list[str]] = None,
        preferences: Optional[list[FoodPreference]] = None,
        orders: Optional[list[OrderSummary]] = None,
    ) -> CustomerContext:
        """Build a context from raw profile data, recording what is missing.

        Allergies and preferences only count when a health profile exists,
        since both hang off it. Only the most recent orders are kept.
        """
        warnings: list[str] = []
        kept_allergies: list[str] = []
        kept_preferences: list[FoodPreference] = []

        if health_profile is None:
            warnings.append("No health profile found")
        else:
            kept_allergies = [a for a in (allergies or []) if a.strip()]
            if not kept_allergies:
                warnings.append("No allergies recorded")

            kept_preferences = list(preferences or [])
            if not kept_preferences:
                warnings.append("No food preferences recorded")

        history = sorted(orders or [], key=lambda o: o.order_date, reverse=True)
        history = history[:MAX_ORDER_HISTORY]
        if not history:
            warnings.append("No order history found")

        return cls(
            customer_id=customer_id,
            full_name=full_name,
            health_profile=health_profile,
            allergies=kept_allergies,
            preferences=kept_preferences,
            order_history=history,
            has_complete_profile=(
                health_profile is not None and bool(kept_allergies) and bool(kept_preferences)
            ),
            missing_data_warnings=warnings,
        )

    @property
    def ordered_recipe_ids(self) -> set[str]:
        """Recipe ids appearing in the retained order history."""
        return {rid for order in self.order_history for rid in order.recipe_ids}
