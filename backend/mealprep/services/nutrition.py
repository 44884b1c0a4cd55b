"""
Nutrition checks and aggregation for recommendations.

Handles:
- Excluding recipes with unusable nutrition data before ranking
- Summing macros across a recommendation set
- Calorie-equivalent macro ratios (protein/carbs 4 kcal/g, fat 9 kcal/g)
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from mealprep.models import DaySummary, MealRecommendation, NutritionalSummary, Recipe

logger = logging.getLogger(__name__)

KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9


def exclude_incomplete_nutrition(recipes: list[Recipe]) -> tuple[list[Recipe], list[Recipe]]:
    """Split recipes into (usable, excluded) by nutrition completeness.

    A recipe with a missing or non-positive calorie, protein, fat or
    carbohydrate value is excluded. Every exclusion is logged.
    """
    usable: list[Recipe] = []
    excluded: list[Recipe] = []

    for recipe in recipes:
        missing = recipe.missing_nutrition
        if missing:
            logger.warning(
                f"Excluding recipe {recipe.id} ({recipe.name}): "
                f"missing or non-positive {', '.join(missing)}"
            )
            excluded.append(recipe)
        else:
            usable.append(recipe)

    return usable, excluded


def aggregate(recommendations: Iterable[MealRecommendation]) -> NutritionalSummary:
    """Sum nutrition over recommendations and derive macro ratios."""
    total_calories = 0.0
    total_protein = 0.0
    total_fat = 0.0
    total_carbs = 0.0

    for rec in recommendations:
        total_calories += rec.nutrition.calories
        total_protein += rec.nutrition.protein_g
        total_fat += rec.nutrition.fat_g
        total_carbs += rec.nutrition.carbs_g

    summary = NutritionalSummary(
        total_calories=total_calories,
        total_protein_g=total_protein,
        total_fat_g=total_fat,
        total_carbs_g=total_carbs,
    )

    if total_calories > 0:
        summary.protein_ratio = (KCAL_PER_G_PROTEIN * total_protein) / total_calories
        summary.carb_ratio = (KCAL_PER_G_CARBS * total_carbs) / total_calories
        summary.fat_ratio = (KCAL_PER_G_FAT * total_fat) / total_calories

    return summary


def aggregate_by_day(recommendations: Iterable[MealRecommendation]) -> list[DaySummary]:
    """Per-day summaries, dates ascending."""
    by_day: dict[date, list[MealRecommendation]] = defaultdict(list)
    for rec in recommendations:
        by_day[rec.slot.date].append(rec)

    return [
        DaySummary(
            date=day,
            meal_count=len(recs),
            recipe_names=[r.recipe.name for r in recs],
            nutrition=aggregate(recs),
        )
        for day, recs in sorted(by_day.items())
    ]
