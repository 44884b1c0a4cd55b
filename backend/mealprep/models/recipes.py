"""Recipe catalog Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Ingredient(BaseModel):
    """An ingredient as linked from a recipe."""

    id: str
    name: str
    is_allergen: bool = False

    # Named allergy categories this ingredient belongs to ("Peanuts", "Dairy")
    allergy_names: list[str] = Field(default_factory=list)


class Recipe(BaseModel):
    """A catalog recipe with per-serving nutrition."""

    id: str
    name: str
    instructions: str = ""

    calories: Optional[float] = None
    protein_g: Optional[float] = None
    fat_g: Optional[float] = None
    carbs_g: Optional[float] = None

    ingredients: list[Ingredient] = Field(default_factory=list)

    @property
    def missing_nutrition(self) -> list[str]:
        """Names of nutrition fields that are missing or non-positive."""
        fields = {
            "calories": self.calories,
            "protein_g": self.protein_g,
            "fat_g": self.fat_g,
            "carbs_g": self.carbs_g,
        }
        return [name for name, value in fields.items() if value is None or value <= 0]

    @property
    def has_complete_nutrition(self) -> bool:
        return not self.missing_nutrition

    @property
    def ingredient_ids(self) -> set[str]:
        return {i.id for i in self.ingredients}
