# backend/agency_crm/api/v1/home.py
from __future__ import annotations

from fastapi import APIRouter

from agency_crm.core.config import settings

# Landing area: bare root domain and www are routed here.
router = APIRouter(prefix="/home", tags=["home"])


def _landing(path: str) -> dict:
    return {
        "service": settings.APP_NAME,
        "area": "home",
        "path": "/" + path if path else "/",
        "portals": {
            "master": f"https://{settings.ADMIN_SUBDOMAIN}.{settings.root_domains[0]}" if settings.root_domains else None,
            "client": f"https://<slug>.{settings.root_domains[0]}" if settings.root_domains else None,
        },
    }


@router.get("")
async def home_root():
    return _landing("")


@router.get("/{path:path}")
async def home_page(path: str):
    return _landing(path)
