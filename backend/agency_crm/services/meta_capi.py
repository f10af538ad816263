# backend/agency_crm/services/meta_capi.py
"""
Meta Conversions API (server-side events).

POST {META_GRAPH_API_URL}/{pixel_id}/events?access_token=...
     {"data": [ <server event>, ... ]}

User identifiers are SHA-256 hashed after trimming and lower-casing, as the
API requires. Network or upstream errors never raise from post_events(); they
come back as a failed CapiResult.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from agency_crm.core.config import settings
from agency_crm.core.logging import get_logger

log = get_logger(__name__)

DEFAULT_CURRENCY = "BRL"
ACTION_SOURCE_WEBSITE = "website"

# eventData key -> user_data key
HASHED_USER_FIELDS: tuple[tuple[str, str], ...] = (
    ("email", "em"),
    ("phone", "ph"),
    ("firstName", "fn"),
    ("lastName", "ln"),
    ("city", "ct"),
    ("state", "st"),
    ("zip", "zp"),
    ("country", "country"),
    ("externalId", "external_id"),
)

# Browser cookies, forwarded as-is
PASSTHROUGH_USER_FIELDS = ("fbc", "fbp")


@dataclass(frozen=True)
class CapiResult:
    success: bool
    code: int
    body: str


def hash_value(value: Any) -> str:
    return hashlib.sha256(str(value).strip().lower().encode("utf-8")).hexdigest()


def build_user_data(
    event_data: Mapping[str, Any],
    *,
    client_ip: Optional[str],
    user_agent: Optional[str],
    include_identifiers: bool = True,
) -> dict[str, Any]:
    user_data: dict[str, Any] = {}
    if client_ip:
        user_data["client_ip_address"] = client_ip
    if user_agent:
        user_data["client_user_agent"] = user_agent

    if include_identifiers:
        for key in PASSTHROUGH_USER_FIELDS:
            if event_data.get(key):
                user_data[key] = event_data[key]
        for src, dst in HASHED_USER_FIELDS:
            if event_data.get(src):
                user_data[dst] = hash_value(event_data[src])

    return user_data


def build_server_event(
    *,
    event_name: str,
    event_id: Optional[str],
    url: Optional[str],
    user_data: dict[str, Any],
    custom_data: dict[str, Any],
    event_time: Optional[int] = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "event_name": event_name,
        "event_time": int(event_time if event_time is not None else time.time()),
        "action_source": ACTION_SOURCE_WEBSITE,
        "user_data": user_data,
        "custom_data": custom_data,
    }
    if event_id:
        event["event_id"] = event_id
    if url:
        event["event_source_url"] = url
    return event


def purchase_custom_data(event_data: Mapping[str, Any]) -> dict[str, Any]:
    """Event data plus the currency/value pair Meta expects on conversions."""
    custom = dict(event_data)
    custom["currency"] = event_data.get("currency") or DEFAULT_CURRENCY
    custom["value"] = event_data.get("value")
    return custom


async def post_events(
    http: httpx.AsyncClient,
    *,
    pixel_id: str,
    access_token: str,
    events: list[dict[str, Any]],
) -> CapiResult:
    url = f"{settings.META_GRAPH_API_URL.rstrip('/')}/{pixel_id}/events"

    try:
        resp = await http.post(url, params={"access_token": access_token}, json={"data": events})
    except httpx.HTTPError as exc:
        log.warning("meta_capi_network_error", pixel_id=pixel_id, error=str(exc))
        return CapiResult(success=False, code=0, body=str(exc))

    if resp.is_success:
        log.info(
            "meta_capi_sent",
            pixel_id=pixel_id,
            events=[e.get("event_name") for e in events],
            status_code=resp.status_code,
        )
        return CapiResult(success=True, code=resp.status_code, body=resp.text)

    log.warning("meta_capi_rejected", pixel_id=pixel_id, status_code=resp.status_code, body=resp.text[:500])
    return CapiResult(success=False, code=resp.status_code, body=resp.text)
