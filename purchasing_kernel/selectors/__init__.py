"""Read-only selectors."""

from purchasing_kernel.selectors.base import BaseSelector
from purchasing_kernel.selectors.status_log_selector import StatusLogSelector

__all__ = ["BaseSelector", "StatusLogSelector"]
