#!/usr/bin/env python3
"""
Quick health check script.

Usage:
    python check_health.py          # Check API, ranking provider and Supabase
    python check_health.py --json   # Output as JSON
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from mealprep.services.healthcheck import get_health_checker, HealthStatus


COLORS = {
    HealthStatus.HEALTHY: "\033[92m",    # Green
    HealthStatus.DEGRADED: "\033[93m",   # Yellow
    HealthStatus.UNHEALTHY: "\033[91m",  # Red
    HealthStatus.UNKNOWN: "\033[90m",    # Gray
}
RESET = "\033[0m"


async def main() -> int:
    parser = argparse.ArgumentParser(description="Check recommendation engine health")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args()

    checker = get_health_checker()
    report = await checker.run_all_checks()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        color = COLORS.get(report.status, "")
        print(f"\nmealprep {report.version} @ {report.timestamp.isoformat()}")
        print(f"Overall: {color}{report.status.value.upper()}{RESET} "
              f"({report.healthy_count}/{report.total_count} checks passing)\n")

        for check in report.checks:
            color = COLORS.get(check.status, "")
            latency = f"{check.latency_ms:.0f}ms" if check.latency_ms else "-"
            print(f"  {check.name:<18} {color}{check.status.value:<10}{RESET} {latency:<8} {check.message}")
        print()

    # Degraded is still operational
    return 1 if report.status == HealthStatus.UNHEALTHY else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
