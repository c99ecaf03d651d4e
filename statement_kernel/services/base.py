"""
BaseService -- abstract base for kernel write services.

Responsibility:
    Common constructor and session contract for every service that writes.
    Services persist with ``session.flush()`` -- never ``session.commit()``.
    The caller (BalanceSheetService's caller, session_scope(), a test)
    owns commit and rollback, so a snapshot insert and its "created" audit
    entry land or vanish together.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from statement_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Abstract base class for all kernel services."""

    def __init__(self, session: Session):
        self.session = session
