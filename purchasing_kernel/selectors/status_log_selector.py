"""
StatusLogSelector -- read access to the status log.

Entries come back ordered by ``created_at`` then ``seq``; seq breaks ties
between entries written within the same clock instant.
"""

from uuid import UUID

from sqlalchemy import select

from purchasing_kernel.models.status_log import StatusLog, StatusLogEntry
from purchasing_kernel.selectors.base import BaseSelector


class StatusLogSelector(BaseSelector):

    def for_entity(self, entity_type: str, entity_id: UUID) -> list[StatusLog]:
        rows = self.session.execute(
            select(StatusLogEntry)
            .where(
                StatusLogEntry.entity_type == entity_type,
                StatusLogEntry.entity_id == entity_id,
            )
            .order_by(StatusLogEntry.created_at, StatusLogEntry.seq)
        ).scalars()
        return [row.to_dto() for row in rows]

    def for_project(self, project_id: UUID) -> list[StatusLog]:
        rows = self.session.execute(
            select(StatusLogEntry)
            .where(StatusLogEntry.project_id == project_id)
            .order_by(StatusLogEntry.created_at, StatusLogEntry.seq)
        ).scalars()
        return [row.to_dto() for row in rows]

    def count_for_entity(self, entity_type: str, entity_id: UUID) -> int:
        return len(self.for_entity(entity_type, entity_id))
