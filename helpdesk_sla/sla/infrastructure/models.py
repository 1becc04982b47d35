"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_sla.infrastructure.database import Base
from helpdesk_sla.config import Priority, TicketStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HolidayModel(Base):
    """
    Database model for Holiday entity.

    Maps to the 'holiday_calendar' table.
    """
    __tablename__ = "holiday_calendar"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    holiday_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)

    # Recurrence
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurrence_rule: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Scope (both null = global)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class BusinessHoursModel(Base):
    """
    Database model for one weekday of a business-hours schedule.

    Maps to the 'business_hours_config' table; a scope's schedule is the
    set of its rows.
    """
    __tablename__ = "business_hours_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # Monday = 0 ... Sunday = 6
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="08:00")
    end_time: Mapped[str] = mapped_column(String(5), nullable=False, default="17:00")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("unit_id", "department_id", "day_of_week", name="uq_business_hours_scope_day"),
    )


class SLAPolicyModel(Base):
    """
    Database model for SLAPolicy entity.

    Maps to the 'sla_policies' table.
    """
    __tablename__ = "sla_policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Selectors (null = wildcard)
    service_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    service_catalog_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    priority: Mapped[Optional[Priority]] = mapped_column(String(50), nullable=True)

    # Targets
    response_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    business_hours_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketModel(Base):
    """
    Database model for the ticket fields read by the SLA engine.

    Maps to the 'tickets' table owned by the ticketing subsystem; this
    service never writes it.
    """
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False, default=Priority.MEDIUM)
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, default=TicketStatus.OPEN, index=True)

    service_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    service_catalog_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
