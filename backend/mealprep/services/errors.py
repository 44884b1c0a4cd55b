"""Typed failures raised by the recommendation engine.

Every fatal condition has its own class so callers can branch on the cause
instead of matching messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mealprep.models import MealRecommendation, MealSlot


class RecommendationError(Exception):
    """Base class for fatal recommendation failures."""

    user_message = "Recommendations are unavailable right now. Please try again later."

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.partial_recommendations: list[MealRecommendation] = []
        self.failed_slot: Optional[MealSlot] = None


class SafetyViolationError(RecommendationError):
    """No safe recipe remains after filtering. Never retried or defaulted."""

    user_message = "No suitable meals were found for your dietary restrictions."


class NoSafeRecipesError(SafetyViolationError):
    """Allergen filtering removed every recipe."""


class CollaboratorUnavailableError(RecommendationError):
    """The ranking collaborator is disabled, unhealthy, or failed to respond."""

    user_message = "Meal recommendations are currently unavailable. Please try again later."


class NoUsableCandidatesError(RecommendationError):
    """The collaborator answered but nothing survived safety re-validation."""

    user_message = "We could not find a suitable meal for this slot. Please try again."
