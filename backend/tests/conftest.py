"""
Pytest configuration and shared fixtures.

Fixtures defined here are available to all tests.
"""

import os
import sys
import pytest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment
os.environ["TESTING"] = "true"

from mealprep.config import Settings
from mealprep.models import (
    CustomerContext,
    FoodPreference,
    HealthProfile,
    Ingredient,
    OrderSummary,
    RankedItem,
    Recipe,
)
from mealprep.services.audit import LoggingAuditor
from mealprep.services.engine import RecommendationEngine
from mealprep.services.history import InMemoryHistoryStore
from mealprep.services.scoring import DelegatedScorer


# =============================================================================
# Stub Collaborators
# =============================================================================


class StubRankingProvider:
    """Ranking provider that returns the first non-excluded candidates.

    Confidence falls by 0.05 per position so the first candidate is always
    the top-confidence pick. Every call is recorded.
    """

    def __init__(self, available: bool = True, answer: list[RankedItem] | None = None):
        self.available = available
        self.answer = answer
        self.calls: list[dict] = []

    async def is_available(self) -> bool:
        return self.available

    async def rank(self, context, candidates, exclusions, slot, count_hint):
        self.calls.append({
            "candidate_ids": [r.id for r in candidates],
            "exclusions": set(exclusions),
            "slot": slot,
            "count_hint": count_hint,
        })
        if self.answer is not None:
            return list(self.answer)

        offered = [r for r in candidates if r.id not in exclusions]
        return [
            RankedItem(
                recipe_id=recipe.id,
                confidence=round(0.95 - 0.05 * i, 2),
                rationale=f"{recipe.name} fits the profile",
                matched_criteria=["variety"],
            )
            for i, recipe in enumerate(offered[:count_hint])
        ]


def make_recipe(recipe_id, name, calories=500, protein_g=30, fat_g=15, carbs_g=60, ingredients=None):
    """Build a recipe with complete nutrition by default."""
    return Recipe(
        id=recipe_id,
        name=name,
        instructions=f"Prepare {name.lower()} and serve.",
        calories=calories,
        protein_g=protein_g,
        fat_g=fat_g,
        carbs_g=carbs_g,
        ingredients=ingredients or [],
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        ai_enabled=True,
        scorer="delegated",
        default_count_hint=1,
        history_lookback_days=3,
        openai_api_key=None,
        supabase_url=None,
        supabase_service_role_key=None,
        audit_backend="logging",
    )


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def recipe_factory():
    """Factory for recipes with complete nutrition."""
    return make_recipe


@pytest.fixture
def peanut():
    return Ingredient(id="ing-peanut", name="Peanut Butter", is_allergen=True, allergy_names=["Peanuts"])


@pytest.fixture
def catalog(peanut):
    """Five recipes, two containing a peanut-flagged ingredient."""
    oats = Ingredient(id="ing-oats", name="Rolled Oats")
    chicken = Ingredient(id="ing-chicken", name="Chicken Breast")
    tofu = Ingredient(id="ing-tofu", name="Tofu")
    noodles = Ingredient(id="ing-noodles", name="Rice Noodles")

    return [
        make_recipe("r-oats", "Overnight Oats", 400, 15, 10, 60, [oats]),
        make_recipe("r-pad-thai", "Peanut Pad Thai", 650, 25, 28, 75, [noodles, peanut]),
        make_recipe("r-chicken", "Grilled Chicken Salad", 550, 45, 18, 40, [chicken]),
        make_recipe("r-satay", "Chicken Satay", 600, 40, 30, 35, [chicken, peanut]),
        make_recipe("r-tofu", "Tofu Stir Fry", 500, 28, 16, 55, [tofu, noodles]),
    ]


@pytest.fixture
def peanut_recipe_ids():
    return {"r-pad-thai", "r-satay"}


@pytest.fixture
def large_catalog():
    """Eight allergen-free recipes with complete nutrition."""
    return [
        make_recipe(f"r-{i}", f"Recipe {i}", calories=400 + 20 * i)
        for i in range(1, 9)
    ]


@pytest.fixture
def health_profile():
    return HealthProfile(
        age=34,
        weight_kg=72.5,
        height_cm=178,
        dietary_restrictions="low-fat",
        calorie_goal=2000,
    )


@pytest.fixture
def context(health_profile):
    """Complete customer context with a peanut allergy."""
    return CustomerContext.analyze(
        customer_id="cust-1",
        full_name="Test Customer",
        health_profile=health_profile,
        allergies=["Peanuts"],
        preferences=[FoodPreference(name="Chicken", ingredient_id="ing-chicken")],
        orders=[OrderSummary(id="order-1", order_date=date(2024, 5, 20), recipe_ids=["r-oats"])],
    )


@pytest.fixture
def bare_context():
    """Customer with no profile data at all."""
    return CustomerContext.analyze(customer_id="cust-2")


# =============================================================================
# Mock Service Fixtures
# =============================================================================


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock = MagicMock()
    mock.table.return_value.select.return_value.execute.return_value.data = []
    mock.table.return_value.insert.return_value.execute.return_value.data = [{"id": "log-uuid"}]
    mock.table.return_value.update.return_value.eq.return_value.execute.return_value.data = [{}]
    return mock


@pytest.fixture
def provider():
    return StubRankingProvider()


@pytest.fixture
def unavailable_provider():
    return StubRankingProvider(available=False)


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def engine(settings, provider, history_store):
    """Engine wired to the stub provider and in-memory history."""
    return RecommendationEngine(
        settings=settings,
        scorer=DelegatedScorer(provider),
        history_store=history_store,
        auditor=LoggingAuditor(),
    )


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def app(engine):
    """FastAPI test application using the stub-backed engine."""
    from mealprep.api.deps import get_engine
    from mealprep.main import app

    app.dependency_overrides[get_engine] = lambda: engine
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Sync test client for API tests."""
    from fastapi.testclient import TestClient
    return TestClient(app)
