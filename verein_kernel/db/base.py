"""
Module: verein_kernel.db.base
Responsibility: Declarative base for the billing tables.  Fixes the column
    types every billing model shares (UUID keys, cent-precision amounts,
    dates) so the mappings in verein_modules only declare what is specific
    to them.
Architecture position: Kernel > DB.  Imports SQLAlchemy only.

Invariants enforced:
    - Primary keys are uuid4 values stored as String(36), so the same
      schema runs on SQLite (tests) and PostgreSQL.
    - ``Decimal`` annotations map to Numeric(18, 2).
    - Every tracked row carries created_at / updated_at set by the database.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# Names for constraints SQLAlchemy creates implicitly (foreign keys, primary keys).
NAMING_CONVENTION = {
    "ix": "idx_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2, asdecimal=True),
        datetime: DateTime(timezone=True),
        date: Date(),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Abstract base adding database-maintained audit timestamps."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
