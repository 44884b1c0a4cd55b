"""
Integration tests for the recommendation endpoints.

The engine is wired to the stub ranking provider through the app fixture.
"""

import pytest

from mealprep.api.deps import get_engine
from mealprep.models import RankedItem
from mealprep.services.engine import RecommendationEngine
from mealprep.services.history import InMemoryHistoryStore
from mealprep.services.scoring import DelegatedScorer


def _payload(context, recipes, **extra):
    return {
        "context": context.model_dump(mode="json"),
        "recipes": [r.model_dump(mode="json") for r in recipes],
        **extra,
    }


class TestPlanEndpoint:
    """Tests for POST /api/recommendations/plan."""

    @pytest.mark.integration
    def test_generate_plan(self, client, context, catalog, peanut_recipe_ids):
        response = client.post(
            "/api/recommendations/plan",
            json=_payload(context, catalog, start_date="2024-06-03", end_date="2024-06-05"),
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["recommendations"]) == 9
        assert data["state"] == "done"
        assert not {r["recipe"]["id"] for r in data["recommendations"]} & peanut_recipe_ids
        assert data["nutritional_summary"]["total_calories"] > 0
        assert len(data["daily_summaries"]) == 3

    @pytest.mark.integration
    def test_meal_types_and_count(self, client, context, large_catalog):
        response = client.post(
            "/api/recommendations/plan",
            json=_payload(
                context, large_catalog,
                start_date="2024-06-03", end_date="2024-06-03",
                meal_types=["dinner"], count_hint=2,
            ),
        )

        assert response.status_code == 200
        recs = response.json()["recommendations"]
        assert len(recs) == 2
        assert all(r["slot"]["meal_type"] == "dinner" for r in recs)

    @pytest.mark.integration
    def test_invalid_range(self, client, context, catalog):
        response = client.post(
            "/api/recommendations/plan",
            json=_payload(context, catalog, start_date="2024-06-05", end_date="2024-06-03"),
        )
        assert response.status_code == 400

    @pytest.mark.integration
    def test_all_unsafe(self, client, context, catalog, peanut_recipe_ids):
        unsafe = [r for r in catalog if r.id in peanut_recipe_ids]

        response = client.post(
            "/api/recommendations/plan",
            json=_payload(context, unsafe, start_date="2024-06-03", end_date="2024-06-03"),
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "No suitable meals were found for your dietary restrictions."

    @pytest.mark.integration
    def test_collaborator_unavailable(self, app, client, settings, unavailable_provider, context, catalog):
        app.dependency_overrides[get_engine] = lambda: RecommendationEngine(
            settings=settings,
            scorer=DelegatedScorer(unavailable_provider),
            history_store=InMemoryHistoryStore(),
        )

        response = client.post(
            "/api/recommendations/plan",
            json=_payload(context, catalog, start_date="2024-06-03", end_date="2024-06-09"),
        )

        assert response.status_code == 503
        assert "recommendations" not in response.json()

    @pytest.mark.integration
    def test_bad_request_body(self, client):
        response = client.post("/api/recommendations/plan", json={"recipes": []})
        assert response.status_code == 422


class TestSlotEndpoint:
    """Tests for POST /api/recommendations/slot."""

    @pytest.mark.integration
    def test_recommend_slot(self, client, context, catalog):
        response = client.post(
            "/api/recommendations/slot",
            json=_payload(context, catalog, date="2024-06-04", meal_type="lunch", exclusions=["r-oats"]),
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["recipe"]["id"] == "r-chicken"
        assert data[0]["relevance_score"] == 95.0

    @pytest.mark.integration
    def test_no_usable_candidates(self, client, provider, context, catalog):
        provider.answer = [RankedItem(recipe_id="r-satay", confidence=0.9)]

        response = client.post(
            "/api/recommendations/slot",
            json=_payload(context, catalog, date="2024-06-04", meal_type="dinner"),
        )

        assert response.status_code == 502
