# tenancy/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class Lease(Base):
    __tablename__ = "leases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    contract_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contract_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    rent_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    deposit_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    occupancy_status: Mapped[str] = mapped_column(String(20), nullable=False, default="occupied")  # occupied|vacant|maintenance
    tenant_response: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    tenant_response_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    auto_renewal_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tenant_user_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True, index=True)
    landlord_user_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True, index=True)
    tenant_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    tenant_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tenant_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # termination case, flattened (see domain/termination.py to_columns/from_columns)
    termination_status: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    termination_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    termination_requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    termination_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    termination_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    termination_requested_by: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    termination_deductions_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    termination_return_override: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Notification(Base):
    """Outbox. Delivery (email/push) is handled elsewhere."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(80), nullable=False)
    kind: Mapped[str] = mapped_column(String(60), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False, index=True)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
