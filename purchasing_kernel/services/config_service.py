"""
ConfigService -- runtime-mutable configuration stored in ``app_config``.

The approval threshold lives in the PR_APPROVAL_THRESHOLD row.  Lifecycle
services call ``get_approval_policy()`` once at the start of an operation
and pass the resulting ApprovalPolicy into the pure authorization gate.
"""

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import select

from purchasing_kernel.config import PurchasingConfig
from purchasing_kernel.domain.authorization import ApprovalPolicy, can_manage_roles
from purchasing_kernel.domain.clock import Clock
from purchasing_kernel.domain.values import require_non_negative
from purchasing_kernel.logging_config import LogContext, get_logger
from purchasing_kernel.models.app_config import PR_APPROVAL_THRESHOLD_KEY, AppConfigEntry
from purchasing_kernel.services.base import BaseService
from purchasing_kernel.services.status_log_service import StatusLogService

logger = get_logger("services.config")

ENTITY_TYPE = "app_config"


class ConfigService(BaseService):

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        config: PurchasingConfig | None = None,
    ):
        super().__init__(session, clock)
        self._config = config or PurchasingConfig.with_defaults()

    def _entry(self, key: str, *, lock: bool = False) -> AppConfigEntry | None:
        stmt = select(AppConfigEntry).where(AppConfigEntry.key == key)
        if lock:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_approval_policy(self) -> ApprovalPolicy:
        """Threshold from app_config, or the configured default when unset."""
        entry = self._entry(PR_APPROVAL_THRESHOLD_KEY)
        if entry is None:
            return self._config.default_approval_policy
        try:
            threshold = Decimal(entry.value)
        except InvalidOperation:
            logger.error(
                "approval_threshold_unparseable",
                extra={"value": entry.value},
            )
            raise
        return ApprovalPolicy(threshold=threshold)

    def set_approval_threshold(self, actor_id: UUID, amount) -> ApprovalPolicy:
        with LogContext.bind(actor_id=actor_id):
            try:
                actor = self._require_actor(actor_id)
                self._authorize(actor, can_manage_roles, "change the approval threshold")
                threshold = require_non_negative("threshold", amount)

                entry = self._entry(PR_APPROVAL_THRESHOLD_KEY, lock=True)
                old_value = entry.value if entry is not None else None
                if entry is None:
                    entry = AppConfigEntry(key=PR_APPROVAL_THRESHOLD_KEY, value=str(threshold))
                    self.session.add(entry)
                else:
                    entry.value = str(threshold)
                entry.updated_by_id = actor.id
                self.session.flush()

                StatusLogService(self.session, self.clock).record(
                    ENTITY_TYPE,
                    entry.id,
                    actor.id,
                    message="Approval threshold changed",
                    metadata={
                        "key": PR_APPROVAL_THRESHOLD_KEY,
                        "old": old_value,
                        "new": str(threshold),
                    },
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info(
            "approval_threshold_changed",
            extra={"old": old_value, "new": str(threshold)},
        )
        return ApprovalPolicy(threshold=threshold)
