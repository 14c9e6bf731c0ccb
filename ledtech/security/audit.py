"""
Append-only audit trail of security-relevant events
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ledtech.security.clock import Clock, utcnow

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("ledtech.audit")


@dataclass
class AuditEntry:
    timestamp: datetime
    action: str
    resource: str
    ip: str
    success: bool
    user_id: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class AuditLogger:
    """
    In-process audit log.

    Entries are kept in insertion order, which is chronological. They are
    never edited; only cleanup() removes them.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock
        self._entries: List[AuditEntry] = []

    def log(
        self,
        action: str,
        resource: str,
        ip: str,
        success: bool,
        user_id: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Record an event stamped with the current time"""
        entry = AuditEntry(
            timestamp=self.clock(),
            action=action,
            resource=resource,
            ip=ip,
            success=success,
            user_id=user_id,
            user_agent=user_agent,
            details=details,
        )
        self._entries.append(entry)

        level = logging.INFO if success else logging.WARNING
        audit_logger.log(
            level,
            f"{entry.action} {entry.resource} user={entry.user_id} "
            f"ip={entry.ip} success={entry.success}",
        )
        return entry

    def get_logs(
        self,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Get entries matching every supplied filter, oldest first"""
        result = []
        for entry in self._entries:
            if user_id is not None and entry.user_id != user_id:
                continue
            if action is not None and entry.action != action:
                continue
            if resource is not None and entry.resource != resource:
                continue
            if start_date is not None and entry.timestamp < start_date:
                continue
            if end_date is not None and entry.timestamp > end_date:
                continue
            result.append(entry)
        return result

    def cleanup(self, before: datetime) -> int:
        """Remove entries strictly older than ``before``"""
        kept = [entry for entry in self._entries if entry.timestamp >= before]
        removed = len(self._entries) - len(kept)
        self._entries = kept
        if removed:
            logger.info(f"Removed {removed} audit entries older than {before.isoformat()}")
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
