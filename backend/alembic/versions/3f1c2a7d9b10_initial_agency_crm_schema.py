"""initial agency crm schema

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a7d9b10"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_admins_email", "admins", ["email"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("slug", sa.String(length=63), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("plan", sa.String(length=30), nullable=False),
        sa.Column("document", sa.String(length=32), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("zip_code", sa.String(length=16), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_clients_email", "clients", ["email"], unique=True)
    op.create_index("ix_clients_slug", "clients", ["slug"], unique=True)

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("head_id", sa.Uuid(), sa.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("sector", sa.String(length=120), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_services_client_id", "services", ["client_id"])

    op.create_table(
        "service_modules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
        sa.Column("key", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_service_modules_service_id", "service_modules", ["service_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invoices_client_id", "invoices", ["client_id"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("priority", sa.String(length=30), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tickets_client_id", "tickets", ["client_id"])

    op.create_table(
        "seo_settings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("global_title", sa.String(length=255), nullable=True),
        sa.Column("global_description", sa.String(length=1000), nullable=True),
        sa.Column("google_search_console_id", sa.String(length=255), nullable=True),
        sa.Column("google_analytics_id", sa.String(length=64), nullable=True),
        sa.Column("target_keywords", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("client_id", name="uq_seo_settings_client_id"),
    )

    op.create_table(
        "marketing_settings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("meta_pixel_id", sa.String(length=64), nullable=True),
        sa.Column("meta_api_token", sa.String(length=512), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("client_id", name="uq_marketing_settings_client_id"),
    )

    op.create_table(
        "tracking_datasets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tracking_datasets_client_id", "tracking_datasets", ["client_id"])

    op.create_table(
        "tracking_destinations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "dataset_id", sa.Uuid(), sa.ForeignKey("tracking_datasets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("platform", sa.String(length=30), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tracking_destinations_dataset_id", "tracking_destinations", ["dataset_id"])

    op.create_table(
        "tracking_sources",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "dataset_id", sa.Uuid(), sa.ForeignKey("tracking_datasets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tracking_sources_dataset_id", "tracking_sources", ["dataset_id"])

    op.create_table(
        "tracking_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "dataset_id", sa.Uuid(), sa.ForeignKey("tracking_datasets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("event_id", sa.String(length=128), nullable=False),
        sa.Column("event_name", sa.String(length=120), nullable=False),
        sa.Column("event_data", sa.JSON(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=False),
        sa.Column("client_ip", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_tracking_events_dataset_id", "tracking_events", ["dataset_id"])
    op.create_index("ix_tracking_events_event_id", "tracking_events", ["event_id"])
    op.create_index("ix_tracking_events_created_at", "tracking_events", ["created_at"])

    op.create_table(
        "tracking_event_deliveries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_id", sa.Uuid(), sa.ForeignKey("tracking_events.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "destination_id",
            sa.Uuid(),
            sa.ForeignKey("tracking_destinations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "dataset_id", sa.Uuid(), sa.ForeignKey("tracking_datasets.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("response_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tracking_event_deliveries_event_id", "tracking_event_deliveries", ["event_id"])
    op.create_index("ix_tracking_event_deliveries_destination_id", "tracking_event_deliveries", ["destination_id"])
    op.create_index("ix_tracking_event_deliveries_dataset_id", "tracking_event_deliveries", ["dataset_id"])


def downgrade() -> None:
    op.drop_table("tracking_event_deliveries")
    op.drop_table("tracking_events")
    op.drop_table("tracking_sources")
    op.drop_table("tracking_destinations")
    op.drop_table("tracking_datasets")
    op.drop_table("marketing_settings")
    op.drop_table("seo_settings")
    op.drop_table("tickets")
    op.drop_table("invoices")
    op.drop_table("service_modules")
    op.drop_table("services")
    op.drop_table("clients")
    op.drop_table("admins")
