"""Kernel reference-data models: actors, projects, vendors, config, status log."""

from purchasing_kernel.models.actor import Actor, ActorModel
from purchasing_kernel.models.app_config import PR_APPROVAL_THRESHOLD_KEY, AppConfigEntry
from purchasing_kernel.models.project import Project, ProjectModel
from purchasing_kernel.models.status_log import StatusLog, StatusLogEntry
from purchasing_kernel.models.vendor import Vendor, VendorModel

__all__ = [
    "Actor",
    "ActorModel",
    "AppConfigEntry",
    "PR_APPROVAL_THRESHOLD_KEY",
    "Project",
    "ProjectModel",
    "StatusLog",
    "StatusLogEntry",
    "Vendor",
    "VendorModel",
]
