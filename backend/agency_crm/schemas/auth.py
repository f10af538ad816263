# backend/agency_crm/schemas/auth.py
from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from agency_crm.core.roles import AdminRole, ClientPlan
from agency_crm.models.client import Client
from agency_crm.schemas.common import UtcDatetime, normalize_text


class ClientRegister(BaseModel):
    """Self sign-up (and master-side creation) of a client account."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=200)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    slug: str = Field(min_length=1, max_length=63)
    plan: ClientPlan = ClientPlan.BASIC

    document: Optional[str] = Field(default=None, max_length=32)
    phone: Optional[str] = Field(default=None, max_length=32)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=120)
    state: Optional[str] = Field(default=None, max_length=64)
    zip_code: Optional[str] = Field(default=None, max_length=16)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v2 = normalize_text(v)
        if not v2:
            raise ValueError("name must not be blank.")
        return v2

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return Client.normalize_email(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return Client.normalize_slug(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class AdminPublic(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: str

    model_config = {"from_attributes": True}


class ClientOut(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    slug: str
    plan: str

    document: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    is_active: bool
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class ClientTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    client: ClientOut


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminPublic


class MeResponse(BaseModel):
    id: UUID
    kind: Literal["admin", "client"]
    name: str
    email: EmailStr
    role: str
    slug: Optional[str] = None


class AdminCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=200)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: AdminRole = AdminRole.COLABORADOR

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return v.strip().lower()
