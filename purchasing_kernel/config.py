"""
Purchasing Configuration Schema.

Process-level settings (database, logging, defaults).  The approval
threshold default here is only the fallback: the live value is the
PR_APPROVAL_THRESHOLD row in ``app_config``, read by ConfigService.

    config = PurchasingConfig.from_yaml("purchasing.yaml")
    init_engine_from_url(config.database_url, echo=config.echo_sql)
"""

from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml

from purchasing_kernel.domain.authorization import DEFAULT_APPROVAL_THRESHOLD, ApprovalPolicy
from purchasing_kernel.domain.numbering import (
    PURCHASE_REQUEST_GLOBAL,
    PURCHASE_REQUEST_YEARLY,
    NumberingScheme,
)
from purchasing_kernel.logging_config import get_logger

logger = get_logger("config")

PR_NUMBERING_MODES = ("yearly", "global")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


@dataclass(frozen=True)
class PurchasingConfig:
    """
    Configuration schema for the purchasing workflow engine.

    pr_numbering:
        "yearly" -> PR-2024-0007 (counter resets each calendar year)
        "global" -> PR-000042
    """

    database_url: str = "sqlite:///purchasing.db"
    echo_sql: bool = False
    log_level: str = "INFO"
    default_approval_threshold: Decimal = DEFAULT_APPROVAL_THRESHOLD
    pr_numbering: str = "yearly"

    def __post_init__(self):
        if not isinstance(self.default_approval_threshold, Decimal):
            object.__setattr__(
                self,
                "default_approval_threshold",
                Decimal(str(self.default_approval_threshold)),
            )
        if self.default_approval_threshold < 0:
            raise ValueError("default_approval_threshold must be >= 0")
        if self.pr_numbering not in PR_NUMBERING_MODES:
            raise ValueError(
                f"pr_numbering must be one of {PR_NUMBERING_MODES}, got {self.pr_numbering!r}"
            )
        object.__setattr__(self, "log_level", str(self.log_level).upper())

    @property
    def default_approval_policy(self) -> ApprovalPolicy:
        return ApprovalPolicy(threshold=self.default_approval_threshold)

    @property
    def pr_numbering_scheme(self) -> NumberingScheme:
        if self.pr_numbering == "global":
            return PURCHASE_REQUEST_GLOBAL
        return PURCHASE_REQUEST_YEARLY

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dict; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown purchasing config keys: {unknown}")
        logger.info(
            "purchasing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Load from a YAML file, optionally nested under a ``purchasing`` key."""
        data = load_yaml_file(Path(path))
        if "purchasing" in data and isinstance(data["purchasing"], dict):
            data = data["purchasing"]
        return cls.from_dict(data)
