"""
Common dependencies for API endpoints.
"""

from typing import Optional

from mealprep.services.engine import RecommendationEngine

_engine: Optional[RecommendationEngine] = None


def get_engine() -> RecommendationEngine:
    """Get the shared recommendation engine, built from settings on first use."""
    global _engine
    if _engine is None:
        _engine = RecommendationEngine()
    return _engine
