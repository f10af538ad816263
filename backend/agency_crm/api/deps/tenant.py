# backend/agency_crm/api/deps/tenant.py
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agency_crm.api.deps.auth import Principal, get_current_principal
from agency_crm.db.session import get_db
from agency_crm.middleware.tenant_routing import CLIENT_SLUG_HEADER
from agency_crm.models.client import Client


def resolve_client_slug(request: Request) -> Optional[str]:
    """
    /api/{client_slug}/...  -> path parameter
    /client/...             -> x-client-slug (set by the routing middleware)
    """
    slug = (
        request.path_params.get("client_slug")
        or request.headers.get(CLIENT_SLUG_HEADER)
        or getattr(request.state, "tenant_slug", None)
    )
    slug = (slug or "").strip().lower()
    return slug or None


async def get_client_by_slug(db: AsyncSession, slug: str) -> Client:
    client = (await db.execute(select(Client).where(Client.slug == slug))).scalar_one_or_none()
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client not found for slug: {slug}",
        )
    return client


async def get_current_client(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """
    Resolve the tenant of a client-area request and check the caller may see it.
    Admins reach every tenant; a client token only reaches its own slug.
    """
    slug = resolve_client_slug(request)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Client slug is required",
        )

    client = await get_client_by_slug(db, slug)

    if isinstance(principal, Client) and principal.id != client.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this client",
        )

    return client
