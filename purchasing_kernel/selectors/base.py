"""
Module: purchasing_kernel.selectors.base
Responsibility: Base class for read-only query selectors.

Selectors accept a Session from the caller, never add/flush/commit, and
return frozen DTOs or computed results rather than live ORM rows.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):

    def __init__(self, session: Session):
        self.session = session
