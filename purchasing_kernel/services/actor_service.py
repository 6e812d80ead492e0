"""
ActorService -- actor lookup and role administration.

``set_user_role`` is the only path that changes a profile's role.  It is
restricted to the admin tier and logs one status-log entry carrying the
from-role and to-role.
"""

from uuid import UUID

from purchasing_kernel.domain.authorization import can_manage_roles
from purchasing_kernel.domain.roles import Role
from purchasing_kernel.exceptions import ActorNotFoundError
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.models.actor import Actor, ActorModel
from purchasing_kernel.services.base import BaseService
from purchasing_kernel.services.status_log_service import StatusLogService

logger = get_logger("services.actor")

ENTITY_TYPE = "profile"


class ActorService(BaseService):

    def require_actor(self, actor_id: UUID) -> Actor:
        """Return the actor, or raise ActorNotFoundError."""
        return self._require_actor(actor_id).to_dto()

    def set_user_role(
        self,
        target_id: UUID,
        new_role: Role | str,
        actor_id: UUID,
        message: str | None = None,
    ) -> Actor:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                self._authorize(actor, can_manage_roles, "change user roles")
                role = Role.parse(new_role)
                target = self._lock(ActorModel, target_id, ActorNotFoundError)

                old_role = target.role
                target.role = role.value
                self.session.flush()

                StatusLogService(self.session, self.clock).record(
                    ENTITY_TYPE,
                    target.id,
                    actor.id,
                    from_status=old_role,
                    to_status=role.value,
                    message=message or "Role changed",
                    metadata={"from_role": old_role, "to_role": role.value},
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "user_role_changed",
            extra={
                "target_id": str(target_id),
                "from_role": old_role,
                "to_role": role.value,
            },
        )
        return target.to_dto()
