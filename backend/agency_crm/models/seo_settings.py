# backend/agency_crm/models/seo_settings.py

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from agency_crm.db.base import Base, utcnow


class SeoSettings(Base):
    __tablename__ = "seo_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    global_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    global_description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    google_search_console_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    google_analytics_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    target_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
