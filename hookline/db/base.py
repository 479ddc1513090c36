"""Declarative base and organization_id mixin for hookline ORM models."""

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all hookline ORM models.

    Every persisted record belongs to exactly one organization, so the owning
    organization_id lives on the base. Exposes metadata for Alembic.
    """

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Identifier of the organization that owns the row.",
    )
