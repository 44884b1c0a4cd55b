"""Pydantic models for the meal recommendation engine."""

from .recipes import (
    Ingredient,
    Recipe,
)
from .customers import (
    CustomerContext,
    FoodPreference,
    HealthProfile,
    OrderSummary,
)
from .recommendations import (
    MealRecommendation,
    MealSlot,
    MealType,
    NutritionalInfo,
    NutritionalSummary,
    RankedItem,
    RecommendationCandidate,
)
from .planning import (
    DaySummary,
    ExclusionSet,
    PlanRequest,
    PlanResult,
    PlanState,
    SlotRequest,
)

__all__ = [
    # Recipes
    "Ingredient",
    "Recipe",
    # Customers
    "CustomerContext",
    "FoodPreference",
    "HealthProfile",
    "OrderSummary",
    # Recommendations
    "MealRecommendation",
    "MealSlot",
    "MealType",
    "NutritionalInfo",
    "NutritionalSummary",
    "RankedItem",
    "RecommendationCandidate",
    # Planning
    "DaySummary",
    "ExclusionSet",
    "PlanRequest",
    "PlanResult",
    "PlanState",
    "SlotRequest",
]
