"""Company model module."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dealflow.models.base import AuditMixin, Base, OwnerScopedMixin


class Company(Base, AuditMixin, OwnerScopedMixin):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
