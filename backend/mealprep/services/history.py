"""
Recent meal history lookups.

The tracker answers "which recipes did this customer get recently?" so the
planner can avoid repeats. Storage is a collaborator: an in-memory store for
tests and embedding apps, and a Supabase store reading plan entries.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Protocol

from mealprep.services.supabase import TABLES, get_supabase_client

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 3


class HistoryStore(Protocol):
    """Source of served-recipe history."""

    async def recent_recipe_ids(
        self, customer_id: str, window_start: date, window_end: date
    ) -> set[str]: ...


class InMemoryHistoryStore:
    """History kept in a dict of customer id -> [(served date, recipe id)]."""

    def __init__(self, entries: dict[str, list[tuple[date, str]]] | None = None):
        self._entries: dict[str, list[tuple[date, str]]] = defaultdict(list)
        for customer_id, served in (entries or {}).items():
            self._entries[customer_id].extend(served)

    def record(self, customer_id: str, served_on: date, recipe_id: str) -> None:
        self._entries[customer_id].append((served_on, recipe_id))

    async def recent_recipe_ids(
        self, customer_id: str, window_start: date, window_end: date
    ) -> set[str]:
        return {
            recipe_id
            for served_on, recipe_id in self._entries.get(customer_id, [])
            if window_start <= served_on <= window_end
        }


class SupabaseHistoryStore:
    """History read from the plan entries table."""

    async def recent_recipe_ids(
        self, customer_id: str, window_start: date, window_end: date
    ) -> set[str]:
        client = get_supabase_client()
        result = client.table(TABLES["plan"]).select("recipe_id").eq(
            "customer_id", customer_id
        ).gte("planned_date", str(window_start)).lte("planned_date", str(window_end)).execute()

        return {e["recipe_id"] for e in (result.data or []) if e.get("recipe_id")}


class RecentHistoryTracker:
    """Computes history windows and fetches recently served recipe ids."""

    def __init__(self, store: HistoryStore, lookback_days: int = DEFAULT_LOOKBACK_DAYS):
        if lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")
        self.store = store
        self.lookback_days = lookback_days

    def window_for(self, target_date: date) -> tuple[date, date]:
        """Window for one slot: the lookback days before target, target excluded."""
        return target_date - timedelta(days=self.lookback_days), target_date - timedelta(days=1)

    def window_for_range(self, start_date: date, end_date: date) -> tuple[date, date]:
        """Union of the per-slot windows of every date in [start, end]."""
        return start_date - timedelta(days=self.lookback_days), end_date - timedelta(days=1)

    async def recent_recipe_ids(
        self, customer_id: str, window_start: date, window_end: date
    ) -> set[str]:
        if window_end < window_start:
            return set()

        recent = await self.store.recent_recipe_ids(customer_id, window_start, window_end)

        logger.info(
            f"Found {len(recent)} recent recipes to avoid for customer {customer_id} "
            f"({window_start} to {window_end})"
        )
        return set(recent)
