"""Allergen safety filtering for recipe candidates."""

import logging
from typing import Iterable

from mealprep.models import Recipe
from mealprep.services.errors import NoSafeRecipesError

logger = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    return name.strip().lower()


def resolve_allergen_ingredient_ids(
    recipes: Iterable[Recipe],
    allergy_names: Iterable[str],
) -> set[str]:
    """Find ids of allergen-flagged ingredients matching the given allergy names.

    An ingredient matches when its own name or one of its linked allergy
    categories equals an allergy name (case-insensitive).
    """
    wanted = {_normalize(n) for n in allergy_names if n and n.strip()}
    if not wanted:
        return set()

    matched: set[str] = set()
    for recipe in recipes:
        for ingredient in recipe.ingredients:
            if not ingredient.is_allergen:
                continue
            names = {_normalize(ingredient.name)}
            names.update(_normalize(a) for a in ingredient.allergy_names)
            if names & wanted:
                matched.add(ingredient.id)

    return matched


def filter_safe(recipes: list[Recipe], allergy_names: list[str]) -> list[Recipe]:
    """Return recipes containing no allergenic ingredient for the given allergies.

    Raises:
        NoSafeRecipesError: if no recipe survives. Callers must never fall
            back to the unfiltered catalog.
    """
    if not allergy_names:
        return recipes

    allergen_ids = resolve_allergen_ingredient_ids(recipes, allergy_names)
    safe = [r for r in recipes if not (r.ingredient_ids & allergen_ids)]

    logger.info(
        f"Filtered {len(recipes)} recipes to {len(safe)} safe recipes "
        f"(allergies: {', '.join(allergy_names)}; {len(allergen_ids)} allergen ingredients)"
    )

    if not safe:
        raise NoSafeRecipesError(
            f"No safe recipes available after filtering allergens: {', '.join(allergy_names)}"
        )

    return safe
