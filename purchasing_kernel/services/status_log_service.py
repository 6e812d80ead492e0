"""
StatusLogService -- the only writer of the append-only status log.

Every state-changing lifecycle operation calls ``record`` a bounded,
documented number of times inside its own unit of work.  There are no
change-detecting triggers or listeners writing entries on the side.

Metadata is normalized to JSON-safe values (Decimal, UUID, dates and enums
become strings) before it is stored.
"""

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from purchasing_kernel.domain.clock import Clock, SystemClock
from purchasing_kernel.logging_config import get_logger
from purchasing_kernel.models.status_log import StatusLogEntry
from purchasing_kernel.services.sequence_service import SequenceService

logger = get_logger("services.status_log")


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return _json_safe(value.value)
    if isinstance(value, (Decimal, UUID, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(v) for v in value]
    return str(value)


class StatusLogService:
    """
    Appends StatusLogEntry rows.

    Flushes only; the calling lifecycle operation owns the transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        *,
        project_id: UUID | None = None,
        from_status: str | None = None,
        to_status: str | None = None,
        message: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> StatusLogEntry:
        entry = StatusLogEntry(
            seq=self._sequences.next_value(SequenceService.STATUS_LOG),
            entity_type=entity_type,
            entity_id=entity_id,
            project_id=project_id,
            from_status=_json_safe(from_status),
            to_status=_json_safe(to_status),
            message=message,
            details=_json_safe(dict(metadata or {})),
            actor_id=actor_id,
            created_at=self._clock.now_utc(),
        )
        self._session.add(entry)
        self._session.flush()

        logger.debug(
            "status_log_recorded",
            extra={
                "seq": entry.seq,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "from_status": entry.from_status,
                "to_status": entry.to_status,
            },
        )
        return entry
