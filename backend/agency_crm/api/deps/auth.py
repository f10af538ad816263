# backend/agency_crm/api/deps/auth.py
from __future__ import annotations

import uuid
from typing import Union

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agency_crm.core.roles import ADMIN_ROLES, CLIENT_ROLES
from agency_crm.core.security import bearer_scheme, decode_access_token
from agency_crm.db.session import get_db
from agency_crm.models.admin import Admin
from agency_crm.models.client import Client

Principal = Union[Admin, Client]


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_principal(
    credentials=Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """
    Dependency for protected endpoints.
    Admin tokens resolve to an Admin row, client (OWNER) tokens to a Client row.
    """
    claims = decode_access_token(credentials.credentials)

    try:
        subject_id = uuid.UUID(claims.subject)
    except ValueError:
        raise _unauthorized()

    if claims.role in ADMIN_ROLES:
        admin = await db.get(Admin, subject_id)
        if not admin or not admin.is_active:
            raise _unauthorized("User not found or inactive")
        return admin

    if claims.role in CLIENT_ROLES:
        client = await db.get(Client, subject_id)
        if not client or not client.is_active:
            raise _unauthorized("User not found or inactive")
        return client

    raise _unauthorized()


async def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Admin:
    if not isinstance(principal, Admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


def require_admin_roles(*allowed_roles: str):
    """
    Enforce admin.role is in allowed_roles. (MASTER/DEV/COLABORADOR)
    """
    allowed = {r.upper() for r in allowed_roles}
    unknown = allowed - ADMIN_ROLES
    if unknown:
        raise ValueError(f"Unknown admin role(s): {sorted(unknown)}. Allowed: {sorted(ADMIN_ROLES)}")

    async def _checker(admin: Admin = Depends(get_current_admin)) -> Admin:
        role = (admin.role or "").upper()
        if role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role: {role}. Allowed: {', '.join(sorted(allowed))}",
            )
        return admin

    return _checker
