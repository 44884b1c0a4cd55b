"""
Health check system.

Checks:
- API responsiveness
- Ranking provider (OpenAI, or the local weighted scorer)
- Database connectivity (Supabase history + operation log)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class CheckResult:
    """Result of a single health check."""
    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0
    details: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class HealthReport:
    """Complete health report for the service."""
    status: HealthStatus
    checks: list[CheckResult]
    timestamp: datetime = field(default_factory=_utcnow)
    version: str = VERSION

    @property
    def healthy_count(self) -> int:
        return sum(1 for c in self.checks if c.status == HealthStatus.HEALTHY)

    @property
    def total_count(self) -> int:
        return len(self.checks)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "summary": f"{self.healthy_count}/{self.total_count} checks passing",
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": round(c.latency_ms, 2),
                    "details": c.details,
                }
                for c in self.checks
            ]
        }


class HealthChecker:
    """Runs health checks against the engine's collaborators."""

    async def run_all_checks(self) -> HealthReport:
        """Run all health checks and return report."""
        names = ["api", "ranking_provider", "supabase"]
        checks = await asyncio.gather(
            self.check_api(),
            self.check_ranking_provider(),
            self.check_supabase(),
            return_exceptions=True,
        )

        # Convert exceptions to failed checks
        results = []
        for name, check in zip(names, checks):
            if isinstance(check, Exception):
                logger.error(f"Health check {name} raised: {check}")
                results.append(CheckResult(
                    name=name,
                    status=HealthStatus.UNHEALTHY,
                    message=str(check),
                ))
            else:
                results.append(check)

        if all(c.status == HealthStatus.HEALTHY for c in results):
            overall = HealthStatus.HEALTHY
        elif results[0].status == HealthStatus.UNHEALTHY:
            overall = HealthStatus.UNHEALTHY
        else:
            overall = HealthStatus.DEGRADED

        return HealthReport(status=overall, checks=results)

    async def check_api(self) -> CheckResult:
        """Check API is responsive."""
        start = time.time()
        return CheckResult(
            name="api",
            status=HealthStatus.HEALTHY,
            message="API is responsive",
            latency_ms=(time.time() - start) * 1000,
        )

    async def check_ranking_provider(self) -> CheckResult:
        """Check the configured scorer can rank candidates."""
        start = time.time()
        try:
            from mealprep.api.deps import get_engine
            from mealprep.config import get_settings

            settings = get_settings()
            details = {"scorer": settings.scorer, "ai_enabled": settings.ai_enabled}

            if not settings.ai_enabled:
                return CheckResult(
                    name="ranking_provider",
                    status=HealthStatus.DEGRADED,
                    message="AI recommendations disabled",
                    latency_ms=(time.time() - start) * 1000,
                    details=details,
                )

            if settings.scorer == "delegated" and not settings.openai_api_key:
                return CheckResult(
                    name="ranking_provider",
                    status=HealthStatus.DEGRADED,
                    message="Not configured (OPENAI_API_KEY missing)",
                    latency_ms=(time.time() - start) * 1000,
                    details=details,
                )

            scorer = get_engine().scorer
            available = await scorer.is_available()
            latency = (time.time() - start) * 1000

            if available:
                return CheckResult(
                    name="ranking_provider",
                    status=HealthStatus.HEALTHY,
                    message=f"Scorer '{scorer.name}' available",
                    latency_ms=latency,
                    details=details,
                )
            return CheckResult(
                name="ranking_provider",
                status=HealthStatus.UNHEALTHY,
                message=f"Scorer '{scorer.name}' unavailable",
                latency_ms=latency,
                details=details,
            )
        except Exception as e:
            return CheckResult(
                name="ranking_provider",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
                latency_ms=(time.time() - start) * 1000,
            )

    async def check_supabase(self) -> CheckResult:
        """Check Supabase database connectivity."""
        start = time.time()
        try:
            from mealprep.config import get_settings
            from mealprep.services.supabase import TABLES, get_supabase_client

            if not get_settings().supabase_enabled:
                return CheckResult(
                    name="supabase",
                    status=HealthStatus.DEGRADED,
                    message="Not configured (history starts empty)",
                    latency_ms=(time.time() - start) * 1000,
                    details={"connected": False},
                )

            client = get_supabase_client()
            client.table(TABLES["plan"]).select("id").limit(1).execute()

            return CheckResult(
                name="supabase",
                status=HealthStatus.HEALTHY,
                message="Database connected",
                latency_ms=(time.time() - start) * 1000,
                details={"connected": True},
            )
        except Exception as e:
            return CheckResult(
                name="supabase",
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {str(e)}",
                latency_ms=(time.time() - start) * 1000,
            )


# Singleton
_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    """Get health checker singleton."""
    global _health_checker
    if _health_checker is None:
        _health_checker = HealthChecker()
    return _health_checker
