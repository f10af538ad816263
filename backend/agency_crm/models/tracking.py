# backend/agency_crm/models/tracking.py

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from agency_crm.db.base import Base, utcnow


class TrackingDataset(Base):
    """Container that receives events from sources and fans them out to destinations."""

    __tablename__ = "tracking_datasets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), index=True, nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    destinations: Mapped[list["TrackingDestination"]] = relationship(
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrackingDestination.created_at",
    )
    sources: Mapped[list["TrackingSource"]] = relationship(
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrackingSource.created_at",
    )


class TrackingDestination(Base):
    __tablename__ = "tracking_destinations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_datasets.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # META | GOOGLE | TIKTOK
    platform: Mapped[str] = mapped_column(String(30), nullable=False)
    # META: {"pixelId": "...", "apiToken": "..."}
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    dataset: Mapped["TrackingDataset"] = relationship(back_populates="destinations")


class TrackingSource(Base):
    __tablename__ = "tracking_sources"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_datasets.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # PIXEL_SCRIPT | WEBHOOK | API
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    # Webhook vendor, free text (e.g. "STRIPE", "HOTMART")
    provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # PENDING until the first event arrives | ACTIVE | INACTIVE
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PENDING")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    dataset: Mapped["TrackingDataset"] = relationship(back_populates="sources")


class TrackingEvent(Base):
    __tablename__ = "tracking_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_datasets.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # Dedup key forwarded to destinations
    event_id: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    event_name: Mapped[str] = mapped_column(String(120), nullable=False)
    event_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    client_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PROCESSED")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True, nullable=False
    )

    deliveries: Mapped[list["TrackingEventDelivery"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrackingEventDelivery.created_at",
    )


class TrackingEventDelivery(Base):
    __tablename__ = "tracking_event_deliveries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_events.id", ondelete="CASCADE"), index=True, nullable=False
    )
    destination_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_destinations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tracking_datasets.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # PENDING | SUCCESS | FAILED
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PENDING")
    response_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    response_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    event: Mapped["TrackingEvent"] = relationship(back_populates="deliveries")
    destination: Mapped["TrackingDestination"] = relationship()
