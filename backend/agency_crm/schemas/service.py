# backend/agency_crm/schemas/service.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from agency_crm.core.roles import ServiceStatus
from agency_crm.schemas.common import UtcDatetime, normalize_keys


class ServiceModuleIn(BaseModel):
    key: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    status: str = Field(default="ACTIVE", max_length=30)

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("key must not be blank.")
        return v2


class ServiceModuleOut(BaseModel):
    id: UUID
    key: str
    name: str
    status: str

    model_config = {"from_attributes": True}


class ServiceHead(BaseModel):
    name: str
    email: EmailStr
    role: str

    model_config = {"from_attributes": True}


class ServiceCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: ServiceStatus = ServiceStatus.PENDING
    sector: Optional[str] = Field(default=None, max_length=120)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    head_id: Optional[UUID] = None
    features: list[str] = Field(default_factory=list)
    modules: list[ServiceModuleIn] = Field(default_factory=list)

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: list[str]) -> list[str]:
        return normalize_keys(v)


class ServiceUpdate(BaseModel):
    """
    Partial update. `features` and `modules`, when present, replace the
    current values as a whole.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[ServiceStatus] = None
    sector: Optional[str] = Field(default=None, max_length=120)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    head_id: Optional[UUID] = None
    features: Optional[list[str]] = None
    modules: Optional[list[ServiceModuleIn]] = None

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return normalize_keys(v) if v is not None else None


class ServiceOut(BaseModel):
    id: UUID
    client_id: UUID
    title: str
    description: Optional[str] = None
    status: str
    sector: Optional[str] = None
    price: Optional[Decimal] = None
    features: list[str] = Field(default_factory=list)

    head_id: Optional[UUID] = None
    head: Optional[ServiceHead] = None
    modules: list[ServiceModuleOut] = Field(default_factory=list)

    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}
