# backend/agency_crm/services/http.py

from __future__ import annotations

from typing import Callable

import httpx

from agency_crm.core.config import settings

HttpClientFactory = Callable[[], httpx.AsyncClient]


def _default_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)


def get_http_client_factory() -> HttpClientFactory:
    """
    FastAPI dependency returning a factory of short-lived AsyncClients for
    outbound calls. Tests override it with an httpx.MockTransport-backed one.
    """
    return _default_http_client
