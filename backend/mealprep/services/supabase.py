"""Supabase client service."""

import logging
from functools import lru_cache

from supabase import create_client, Client

from mealprep.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get Supabase client with service role key (admin access)."""
    settings = get_settings()
    if not settings.supabase_enabled:
        raise ValueError("Supabase is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY)")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )


# Table names (owned by the surrounding application)
TABLES = {
    "plan": "meal_plan_entries",
    "operation_logs": "ai_operation_logs",
}
