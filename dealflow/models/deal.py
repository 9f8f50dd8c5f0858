"""Deal model module."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealflow.models.base import AuditMixin, Base, OwnerScopedMixin
from dealflow.models.enums import DealStatus


class Deal(Base, AuditMixin, OwnerScopedMixin):
    __tablename__ = "deals"
    __table_args__ = (
        Index("idx_deals_owner_status", "owner_id", "status"),
        Index("idx_deals_stage", "stage_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default="BRL", nullable=False)
    status: Mapped[DealStatus] = mapped_column(
        Enum(DealStatus, native_enum=False, length=20), default=DealStatus.OPEN, nullable=False
    )
    probability: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    expected_close_date: Mapped[date | None] = mapped_column(Date)
    description: Mapped[str | None] = mapped_column(Text)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    lost_reason: Mapped[str | None] = mapped_column(Text)
    stage_id: Mapped[int | None] = mapped_column(ForeignKey("pipeline_stages.id", ondelete="RESTRICT"))
    contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"))
    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id", ondelete="SET NULL"))

    stage = relationship("PipelineStage", back_populates="deals")
    contact = relationship("Contact")
    company = relationship("Company")
