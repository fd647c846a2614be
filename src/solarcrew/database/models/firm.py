"""Firm and Crew models for Solarcrew.

Firms and crews are administered elsewhere; the workflow only reads them to
pick a project's status schema and to check that a crew may work on a
firm's reclamations.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from solarcrew.database.models.base import Base, TimestampMixin
from solarcrew.database.models.project import StatusSchema


class Firm(TimestampMixin, Base):
    """An installation company.

    Attributes:
        name: Firm name.
        status_schema: Status vocabulary used by the firm's projects.
    """

    __tablename__ = "firms"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    status_schema: Mapped[StatusSchema] = mapped_column(
        Enum(StatusSchema, name="status_schema"),
        default=StatusSchema.extended,
        nullable=False,
    )


class Crew(TimestampMixin, Base):
    """An installation crew belonging to a firm.

    Attributes:
        firm_id: Owning firm.
        name: Crew name.
        is_active: Inactive crews cannot receive reclamations.
    """

    __tablename__ = "crews"

    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
