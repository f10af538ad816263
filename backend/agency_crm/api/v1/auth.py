# backend/agency_crm/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agency_crm.api.deps.auth import Principal, get_current_principal
from agency_crm.core.logging import get_logger
from agency_crm.core.roles import ClientRole
from agency_crm.core.security import create_access_token, verify_password
from agency_crm.crud.client import create_client, get_admin_by_email, get_client_by_email
from agency_crm.db.session import get_db
from agency_crm.models.admin import Admin
from agency_crm.schemas.auth import (
    AdminPublic,
    AdminTokenResponse,
    ClientOut,
    ClientRegister,
    ClientTokenResponse,
    LoginRequest,
    MeResponse,
)

# Mounted at /auth (host-routed area) and /api/auth
router = APIRouter(tags=["auth"])

log = get_logger(__name__)


def _invalid_credentials() -> HTTPException:
    # One message for unknown email, wrong password and inactive account
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")


@router.post("/register", response_model=ClientTokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: ClientRegister, db: AsyncSession = Depends(get_db)) -> ClientTokenResponse:
    """
    Client self sign-up. The slug becomes the tenant subdomain.
    """
    client = await create_client(db, payload)

    token = create_access_token(subject=str(client.id), role=ClientRole.OWNER.value, slug=client.slug)
    log.info("client_registered", client_id=str(client.id), slug=client.slug)
    return ClientTokenResponse(access_token=token, client=ClientOut.model_validate(client))


@router.post("/login", response_model=ClientTokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> ClientTokenResponse:
    client = await get_client_by_email(db, payload.email)
    if not client or not client.is_active:
        raise _invalid_credentials()

    if not verify_password(payload.password, client.password_hash):
        raise _invalid_credentials()

    token = create_access_token(subject=str(client.id), role=ClientRole.OWNER.value, slug=client.slug)
    return ClientTokenResponse(access_token=token, client=ClientOut.model_validate(client))


@router.post("/admin/login", response_model=AdminTokenResponse)
async def admin_login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> AdminTokenResponse:
    admin = await get_admin_by_email(db, payload.email)
    if not admin or not admin.is_active:
        raise _invalid_credentials()

    if not verify_password(payload.password, admin.password_hash):
        raise _invalid_credentials()

    token = create_access_token(subject=str(admin.id), role=admin.role)
    return AdminTokenResponse(access_token=token, admin=AdminPublic.model_validate(admin))


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    """
    Returns the identity behind the bearer token (admin or client).
    """
    if isinstance(principal, Admin):
        return MeResponse(
            id=principal.id,
            kind="admin",
            name=principal.name,
            email=principal.email,
            role=principal.role,
        )

    return MeResponse(
        id=principal.id,
        kind="client",
        name=principal.name,
        email=principal.email,
        role=ClientRole.OWNER.value,
        slug=principal.slug,
    )
