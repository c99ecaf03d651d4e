"""
Module: statement_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, a UTC-normalizing timestamp type, the
    type annotation map for consistent column types, and the TenantScoped
    mixin that every stored row carries.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel.  MUST NOT import from models/, services/, selectors/ or outer layers.

Invariants enforced:
    - UUID primary keys on every model.
    - Decimal maps to Numeric(38, 9).  NEVER use float for monetary amounts.
    - Timestamps are timezone-aware UTC on the way in and on the way out,
      including on backends that store naive values (SQLite in tests).
    - Every tenant-owned row has a NOT NULL, indexed tenant_id.

Failure modes:
    - ValueError from UTCDateTime if a naive datetime is bound.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator

from statement_kernel.db.types import AccountCode, LongText, Money, Name, ShortCode


class UUIDString(TypeDecorator):
    """UUIDs travel as their 36-character text form so SQLite and PostgreSQL share one schema."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(str(value))


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp normalized to UTC.

    PostgreSQL keeps the offset; SQLite drops it.  Values are converted to
    UTC before binding and re-tagged as UTC when loaded, so comparisons in
    Python never mix naive and aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """
    Root of every statement_kernel table.

    Guarantees:
        - id defaults to uuid4() and is stored through UUIDString.
        - Decimal maps to Numeric(38, 9).
        - datetime maps to UTCDateTime.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
        Money: Numeric(38, 9),
        AccountCode: String(20),
        ShortCode: String(50),
        Name: String(255),
        LongText: String(4000),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TenantScoped:
    """
    Mixin for rows owned by a tenant.

    Every selector and service filters on tenant_id; there is no query path
    that reads across tenants.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(String(64), nullable=False, index=True)
