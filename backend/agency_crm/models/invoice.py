# backend/agency_crm/models/invoice.py

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Uuid, inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from agency_crm.db.base import Base, utcnow

if TYPE_CHECKING:
    from agency_crm.models.client import Client
    from agency_crm.models.service import Service


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), index=True, nullable=False
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="SET NULL"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # PENDING | PAID | OVERDUE | CANCELLED
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PENDING")

    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="invoices")
    service: Mapped[Optional["Service"]] = relationship()

    @property
    def service_title(self) -> Optional[str]:
        # Only meaningful when the service relationship was eager-loaded
        if "service" in inspect(self).unloaded:
            return None
        return self.service.title if self.service is not None else None
