# backend/agency_crm/models/client.py

import re
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from agency_crm.db.base import Base, utcnow

if TYPE_CHECKING:
    from agency_crm.models.invoice import Invoice
    from agency_crm.models.service import Service
    from agency_crm.models.ticket import Ticket

# one DNS label: the slug doubles as the tenant subdomain
_SLUG_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

# labels the host router already gives a meaning to, plus the fixed area roots
RESERVED_SLUGS = frozenset({"admin", "www", "master", "client", "home", "auth", "api", "public"})


class Client(Base):
    """A tenant: the agency's customer, reachable at <slug>.<root domain>."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(63), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # BASIC | PRO | ENTERPRISE
    plan: Mapped[str] = mapped_column(String(30), nullable=False, default="BASIC")

    # Business profile
    document: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    services: Mapped[list["Service"]] = relationship(
        back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )
    invoices: Mapped[list["Invoice"]] = relationship(
        back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )
    tickets: Mapped[list["Ticket"]] = relationship(
        back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )

    @staticmethod
    def normalize_slug(value: Optional[str]) -> str:
        v = (value or "").strip().lower()
        if not _SLUG_RE.match(v):
            raise ValueError("slug must be lowercase letters, digits or hyphens (1-63 chars, no leading/trailing hyphen).")
        if v in RESERVED_SLUGS:
            raise ValueError(f"slug {v!r} is reserved.")
        return v

    @staticmethod
    def normalize_email(value: str) -> str:
        return (value or "").strip().lower()
