"""
Administrative API routes: audit trail and session overview.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ledtech.api.dependencies import (
    SecurityServices,
    get_security,
    require_system_config,
    require_system_logs,
)
from ledtech.api.metrics import update_active_sessions
from ledtech.security.directory import UserRecord
from ledtech.security.masking import mask_ip

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive query values are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuditListResponse(BaseModel):
    """Response model for audit queries."""

    entries: List[Dict[str, Any]]
    total: int


class SessionStatsResponse(BaseModel):
    active_sessions: int


@router.get("/audit", response_model=AuditListResponse)
async def list_audit_entries(
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    current_user: UserRecord = Depends(require_system_logs),
    security: SecurityServices = Depends(get_security),
):
    """List audit entries, newest last. Client addresses are masked."""
    entries = security.audit.get_logs(
        user_id=user_id,
        action=action,
        resource=resource,
        start_date=_as_utc(start_date),
        end_date=_as_utc(end_date),
    )

    rendered = []
    for entry in entries[-limit:]:
        data = entry.to_dict()
        data["ip"] = mask_ip(entry.ip)
        rendered.append(data)

    return AuditListResponse(entries=rendered, total=len(entries))


@router.get("/sessions", response_model=SessionStatsResponse)
async def session_stats(
    current_user: UserRecord = Depends(require_system_config),
    security: SecurityServices = Depends(get_security),
):
    count = security.sessions.get_active_session_count()
    update_active_sessions(count)
    return SessionStatsResponse(active_sessions=count)
