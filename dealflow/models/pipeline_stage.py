"""Pipeline stage model module."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealflow.models.base import AuditMixin, Base


class PipelineStage(Base, AuditMixin):
    __tablename__ = "pipeline_stages"
    __table_args__ = (Index("idx_pipeline_stages_active_order", "is_active", "order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)
    # Not unique: reorder rewrites every row inside one transaction.
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    deals = relationship("Deal", back_populates="stage")
