"""
Operation audit trail for recommendation runs.

Auditors record start/success/failure events with timing. The engine talks
to them through AuditTrail, which makes sure an audit failure never fails a
recommendation.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from mealprep.services.supabase import TABLES, get_supabase_client

logger = logging.getLogger(__name__)


class OperationStatus:
    IN_PROGRESS = "InProgress"
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass
class AuditHandle:
    """Reference to a started operation."""
    operation_type: str
    customer_id: Optional[str] = None
    log_id: Optional[Any] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: list[str] = field(default_factory=list)


class OperationAuditor(Protocol):
    """Audit collaborator contract."""

    async def start(self, operation_type: str, customer_id: Optional[str], parameters: dict) -> AuditHandle: ...

    async def succeed(self, handle: AuditHandle, summary: dict, duration_ms: int) -> None: ...

    async def fail(self, handle: AuditHandle, error: BaseException, duration_ms: int) -> None: ...

    async def note(self, handle: AuditHandle, message: str) -> None: ...


class LoggingAuditor:
    """Writes audit events to the application log."""

    async def start(self, operation_type, customer_id, parameters) -> AuditHandle:
        handle = AuditHandle(operation_type=operation_type, customer_id=customer_id)
        logger.info(f"AI operation started: {operation_type} (customer {customer_id}, params {parameters})")
        return handle

    async def succeed(self, handle, summary, duration_ms) -> None:
        logger.info(
            f"AI operation completed: {handle.operation_type} "
            f"(status {OperationStatus.SUCCESS}, {duration_ms}ms, {summary})"
        )

    async def fail(self, handle, error, duration_ms) -> None:
        logger.error(
            f"AI operation failed: {handle.operation_type} "
            f"({type(error).__name__}: {error}, {duration_ms}ms)"
        )

    async def note(self, handle, message) -> None:
        handle.notes.append(message)
        logger.info(f"AI operation note ({handle.operation_type}): {message}")


class SupabaseAuditor:
    """Persists audit events to the operation log table."""

    async def start(self, operation_type, customer_id, parameters) -> AuditHandle:
        handle = AuditHandle(operation_type=operation_type, customer_id=customer_id)
        client = get_supabase_client()
        result = client.table(TABLES["operation_logs"]).insert({
            "operation_type": operation_type,
            "customer_id": customer_id,
            "status": OperationStatus.IN_PROGRESS,
            "input_parameters": parameters,
            "timestamp": handle.started_at.isoformat(),
            "execution_duration_ms": 0,
        }).execute()

        if result.data:
            handle.log_id = result.data[0].get("id")
        return handle

    async def succeed(self, handle, summary, duration_ms) -> None:
        self._update(handle, {
            "status": OperationStatus.SUCCESS,
            "output_summary": {**summary, "notes": handle.notes},
            "execution_duration_ms": duration_ms,
        })

    async def fail(self, handle, error, duration_ms) -> None:
        self._update(handle, {
            "status": OperationStatus.FAILURE,
            "error_message": str(error),
            "stack_trace": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "execution_duration_ms": duration_ms,
        })

    async def note(self, handle, message) -> None:
        handle.notes.append(message)

    def _update(self, handle: AuditHandle, data: dict) -> None:
        if handle.log_id is None:
            logger.warning(f"Cannot update operation log: {handle.operation_type} has no log id")
            return
        client = get_supabase_client()
        client.table(TABLES["operation_logs"]).update(data).eq("id", handle.log_id).execute()


class AuditTrail:
    """Fire-and-forget wrapper: audit errors are logged, never raised."""

    def __init__(self, auditor: OperationAuditor):
        self.auditor = auditor

    async def start(self, operation_type: str, customer_id: Optional[str], parameters: dict) -> AuditHandle:
        try:
            return await self.auditor.start(operation_type, customer_id, parameters)
        except Exception as e:
            logger.warning(f"Audit start failed for {operation_type}: {e}")
            return AuditHandle(operation_type=operation_type, customer_id=customer_id)

    async def succeed(self, handle: AuditHandle, summary: dict, duration_ms: int) -> None:
        try:
            await self.auditor.succeed(handle, summary, duration_ms)
        except Exception as e:
            logger.warning(f"Audit success event failed for {handle.operation_type}: {e}")

    async def fail(self, handle: AuditHandle, error: BaseException, duration_ms: int) -> None:
        try:
            await self.auditor.fail(handle, error, duration_ms)
        except Exception as e:
            logger.warning(f"Audit failure event failed for {handle.operation_type}: {e}")

    async def note(self, handle: AuditHandle, message: str) -> None:
        try:
            await self.auditor.note(handle, message)
        except Exception as e:
            logger.warning(f"Audit note failed for {handle.operation_type}: {e}")


def build_auditor(backend: str = "logging") -> OperationAuditor:
    if backend == "supabase":
        return SupabaseAuditor()
    return LoggingAuditor()
