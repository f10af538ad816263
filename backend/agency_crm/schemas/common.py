# backend/agency_crm/schemas/common.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator

from agency_crm.db.base import as_utc


def _as_utc(value: datetime) -> datetime:
    return as_utc(value)


# Naive values (sqlite) are read as UTC so every response carries an offset.
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(value.strip().split())
    return v or None


def normalize_keys(values: Optional[list[str]]) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping order."""
    seen: list[str] = []
    for raw in values or []:
        v = (raw or "").strip()
        if v and v not in seen:
            seen.append(v)
    return seen
