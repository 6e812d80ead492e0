"""Services for the purchasing kernel (write side)."""

from purchasing_kernel.services.actor_service import ActorService
from purchasing_kernel.services.base import BaseService
from purchasing_kernel.services.config_service import ConfigService
from purchasing_kernel.services.sequence_service import SequenceCounter, SequenceService
from purchasing_kernel.services.status_log_service import StatusLogService
from purchasing_kernel.services.vendor_service import VendorService

__all__ = [
    "ActorService",
    "BaseService",
    "ConfigService",
    "SequenceCounter",
    "SequenceService",
    "StatusLogService",
    "VendorService",
]
