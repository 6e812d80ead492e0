"""
Module: purchasing_kernel.models.project
Responsibility: Minimal project row that purchasing documents hang off.

Projects belong to the external project/SOV/timeline spine; the workflow
engine only needs existence, the code and the active flag.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing_kernel.db.base import TrackedBase


@dataclass(frozen=True)
class Project:
    id: UUID
    project_code: str
    name: str
    is_active: bool


class ProjectModel(TrackedBase):

    __tablename__ = "projects"

    project_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Project:
        return Project(
            id=self.id,
            project_code=self.project_code,
            name=self.name,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<ProjectModel {self.project_code}>"
