# backend/agency_crm/core/roles.py

import enum


class AdminRole(str, enum.Enum):
    MASTER = "MASTER"            # agency owner, manages other admins
    DEV = "DEV"
    COLABORADOR = "COLABORADOR"


class ClientRole(str, enum.Enum):
    OWNER = "OWNER"   # the client account itself


ADMIN_ROLES = frozenset(r.value for r in AdminRole)
CLIENT_ROLES = frozenset(r.value for r in ClientRole)


class ClientPlan(str, enum.Enum):
    BASIC = "BASIC"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class ServiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class InvoiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class TicketStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TicketPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class DestinationPlatform(str, enum.Enum):
    META = "META"
    GOOGLE = "GOOGLE"
    TIKTOK = "TIKTOK"


class SourceType(str, enum.Enum):
    PIXEL_SCRIPT = "PIXEL_SCRIPT"
    WEBHOOK = "WEBHOOK"
    API = "API"


class SourceStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class DeliveryStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
