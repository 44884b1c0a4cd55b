"""AI service - OpenAI integration for ranking recipe candidates."""

from __future__ import annotations

import json
import logging
import math
import random
from typing import Optional

import openai
from openai import AsyncOpenAI

from mealprep.config import Settings, get_settings
from mealprep.models import CustomerContext, MealSlot, RankedItem, Recipe
from mealprep.services.errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a professional nutritionist and meal planning expert."
INSTRUCTIONS_EXCERPT_CHARS = 100


class OpenAIRankingProvider:
    """OpenAI-powered ranking of safe recipe candidates for a meal slot."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self.client = client
        if self.client is None and self.settings.openai_api_key:
            # Transport retries use the client's own exponential backoff
            self.client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.openai_timeout_seconds,
                max_retries=self.settings.openai_max_retries,
            )

    @property
    def model_name(self) -> str:
        return self.settings.openai_model

    async def is_available(self) -> bool:
        """Check the API key is set and the model answers a minimal request."""
        if self.client is None:
            logger.error("OpenAI API key is not configured")
            return False

        try:
            await self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=5,
            )
            return True
        except Exception as e:
            logger.error(f"OpenAI health check failed ({self.model_name}): {e}")
            return False

    async def rank(
        self,
        context: CustomerContext,
        candidates: list[Recipe],
        exclusions: set[str],
        slot: MealSlot,
        count_hint: int,
    ) -> list[RankedItem]:
        """Ask the model to pick recipes for a slot.

        Output is untrusted: callers must re-validate every returned id.
        """
        if self.client is None:
            raise CollaboratorUnavailableError("OpenAI API key is not configured")

        prompt = self._build_ranking_prompt(context, candidates, exclusions, slot, count_hint)

        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.settings.openai_temperature,
                max_tokens=1500,
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            logger.error(f"OpenAI ranking failed for {slot}: {e}")
            raise CollaboratorUnavailableError(f"AI recommendation failed: {e}") from e

        content = response.choices[0].message.content or ""
        return self._parse_ranking(content, candidates)

    def _build_ranking_prompt(
        self,
        context: CustomerContext,
        candidates: list[Recipe],
        exclusions: set[str],
        slot: MealSlot,
        count_hint: int,
    ) -> str:
        """Build the diversity-aware ranking prompt."""
        lines = [
            "Create diverse, varied meal recommendations that avoid repetition.",
            "",
            "## Customer Profile",
            f"Name: {context.full_name or context.customer_id}",
        ]

        profile = context.health_profile
        if profile is not None:
            lines.append(f"Calorie Goal: {profile.calorie_goal or 2000} cal/day")
            lines.append(f"Dietary Restrictions: {profile.dietary_restrictions or 'None'}")
            lines.append(f"Health Notes: {profile.health_notes or 'General wellness'}")

        if context.allergies:
            lines.append(f"Allergies: {', '.join(context.allergies)}")
            lines.append("CRITICAL: Never recommend recipes containing these allergens!")

        if context.preferences:
            lines.append(f"Preferred Ingredients: {', '.join(p.name for p in context.preferences)}")

        lines += ["", "## Diversity Requirements", f"Target: {slot.meal_type.value} for {slot.date.isoformat()}"]

        forbidden = [r.name for r in candidates if r.id in exclusions]
        if forbidden:
            lines.append("FORBIDDEN RECIPES (served recently):")
            lines += [f"   - {name}" for name in forbidden]
            lines.append("DO NOT recommend any of these recipes!")

        lines += [
            "VARIETY RULES:",
            "   - Choose recipes with different cooking methods",
            "   - Vary protein sources",
            "   - Include different cuisines when possible",
            "   - Prioritize recipes that haven't been used recently",
            "",
        ]

        available = [r for r in candidates if r.id not in exclusions]
        random.shuffle(available)
        available = available[: self.settings.max_prompt_candidates]

        lines.append("## Available Recipes (already filtered for allergen safety)")
        lines.append(f"Total available: {len(available)} recipes (excluding {len(forbidden)} recent recipes)")
        lines.append("")
        for recipe in available:
            instructions = recipe.instructions
            if len(instructions) > INSTRUCTIONS_EXCERPT_CHARS:
                instructions = instructions[:INSTRUCTIONS_EXCERPT_CHARS] + "..."
            lines.append(f"- [{recipe.id}] {recipe.name}")
            lines.append(
                f"  Calories: {recipe.calories}, Protein: {recipe.protein_g}g, "
                f"Carbs: {recipe.carbs_g}g, Fat: {recipe.fat_g}g"
            )
            lines.append(f"  Instructions: {instructions}")

        lines += [
            "",
            "## Task",
            f"Select {count_hint} recipe(s) for {slot.meal_type.value} that:",
            "1. Are NOT in the forbidden list above",
            "2. Match the customer's dietary needs and preferences",
            "3. Provide variety in cooking method, protein, and cuisine",
            f"4. Are appropriate for {slot.meal_type.value}",
            "5. Offer nutritional balance",
            "",
            "Respond in JSON format:",
            """{
  "recommendations": [
    {
      "recipeId": "id from the list",
      "recipeName": "Recipe Name",
      "confidenceScore": 0.95,
      "reasoning": "Why this recipe fits and adds variety",
      "matchedCriteria": ["criterion1", "criterion2"]
    }
  ],
  "overallReasoning": "Summary of how these recipes provide variety"
}""",
        ]

        return "\n".join(lines)

    def _parse_ranking(self, content: str, candidates: list[Recipe]) -> list[RankedItem]:
        """Parse the model's JSON answer into ranked items.

        Items are matched to candidates by id, then by case-insensitive name.
        Unparseable output yields an empty list.
        """
        start = content.find("{")
        end = content.rfind("}") + 1
        if start < 0 or end <= start:
            logger.warning("AI response contained no JSON object")
            return []

        try:
            data = json.loads(content[start:end])
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse AI response: {e}")
            return []

        by_id = {r.id: r for r in candidates}
        by_name = {r.name.strip().lower(): r for r in candidates}

        items: list[RankedItem] = []
        for rec in data.get("recommendations") or []:
            if not isinstance(rec, dict):
                continue

            recipe = by_id.get(str(rec.get("recipeId", "")))
            if recipe is None:
                recipe = by_name.get(str(rec.get("recipeName", "")).strip().lower())

            # Unknown recipes are passed through by id so the caller can reject them
            recipe_id = recipe.id if recipe else str(rec.get("recipeId") or rec.get("recipeName") or "")
            if not recipe_id:
                continue

            try:
                confidence = float(rec.get("confidenceScore", 0))
            except (TypeError, ValueError):
                confidence = 0.0
            if not math.isfinite(confidence):
                confidence = 0.0

            criteria = rec.get("matchedCriteria") or []
            items.append(RankedItem(
                recipe_id=recipe_id,
                confidence=confidence,
                rationale=str(rec.get("reasoning") or ""),
                matched_criteria=[str(c) for c in criteria] if isinstance(criteria, list) else [],
            ))

        return items
