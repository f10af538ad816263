# Import models here so Alembic can discover metadata.
from agency_crm.models.admin import Admin  # noqa: F401
from agency_crm.models.client import Client  # noqa: F401

# Client portal
from agency_crm.models.service import Service, ServiceModule  # noqa: F401
from agency_crm.models.invoice import Invoice  # noqa: F401
from agency_crm.models.ticket import Ticket  # noqa: F401
from agency_crm.models.seo_settings import SeoSettings  # noqa: F401
from agency_crm.models.marketing_settings import MarketingSettings  # noqa: F401

# Tracking pipeline
from agency_crm.models.tracking import (  # noqa: F401
    TrackingDataset,
    TrackingDestination,
    TrackingEvent,
    TrackingEventDelivery,
    TrackingSource,
)
