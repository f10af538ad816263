# backend/agency_crm/models/ticket.py

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from agency_crm.db.base import Base, utcnow

if TYPE_CHECKING:
    from agency_crm.models.client import Client


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), index=True, nullable=False
    )

    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # OPEN | IN_PROGRESS | RESOLVED | CLOSED
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="OPEN")
    # LOW | MEDIUM | HIGH | URGENT
    priority: Mapped[str] = mapped_column(String(30), nullable=False, default="MEDIUM")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="tickets")
